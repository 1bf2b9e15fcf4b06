"""Local, TTL-bound article cache with three independent key spaces.

Scraped page content is keyed by article link; summaries and chat threads are
keyed by article id. Expiry is lazy: an entry older than the TTL reads as a
miss but stays on disk until the next ``sweep``.
"""
from __future__ import annotations

import json
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Mapping, Protocol

from loguru import logger
from pydantic import BaseModel, ValidationError

from newsdeck.config import settings
from newsdeck.models.cache import (
    PAYLOAD_TYPES,
    SCHEMA_VERSION,
    ArticleSummary,
    CacheEntry,
    CacheKind,
    ChatMessage,
    ChatThread,
    ScrapedContent,
)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CacheStorage(Protocol):
    def load(self, kind: CacheKind) -> dict[str, Any]: ...

    def save(self, kind: CacheKind, documents: dict[str, Any]) -> None: ...


class JsonFileStorage:
    """One JSON document per cache kind, replaced atomically on every write."""

    def __init__(self, root_dir: str | Path):
        self.root_dir = Path(root_dir)

    def path_for(self, kind: CacheKind) -> Path:
        return self.root_dir / f"{kind.value}.json"

    def load(self, kind: CacheKind) -> dict[str, Any]:
        path = self.path_for(kind)
        if not path.exists():
            return {}

        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning(f"Unreadable {kind.value} cache at {path}, starting empty: {exc}")
            return {}

        if not isinstance(payload, dict):
            return {}
        entries = payload.get("entries")
        if not isinstance(entries, dict):
            return {}
        return entries

    def save(self, kind: CacheKind, documents: dict[str, Any]) -> None:
        path = self.path_for(kind)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"version": SCHEMA_VERSION, "kind": kind.value, "entries": documents}
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp_path, path)


class MemoryStorage:
    def __init__(self, initial: dict[CacheKind, dict[str, Any]] | None = None):
        self.documents: dict[CacheKind, dict[str, Any]] = dict(initial or {})
        self.save_count = 0

    def load(self, kind: CacheKind) -> dict[str, Any]:
        return dict(self.documents.get(kind, {}))

    def save(self, kind: CacheKind, documents: dict[str, Any]) -> None:
        self.save_count += 1
        self.documents[kind] = dict(documents)


class ArticleCache:
    def __init__(
        self,
        storage: CacheStorage,
        *,
        ttl: timedelta = timedelta(days=7),
        clock: Clock = _utc_now,
    ):
        self.storage = storage
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[CacheKind, Mapping[str, CacheEntry]] = {
            kind: self._load(kind) for kind in CacheKind
        }

    def _load(self, kind: CacheKind) -> dict[str, CacheEntry]:
        try:
            raw = self.storage.load(kind)
        except Exception as exc:
            logger.warning(f"Failed to load {kind.value} cache, starting empty: {exc}")
            return {}

        entry_type = CacheEntry[PAYLOAD_TYPES[kind]]
        loaded: dict[str, CacheEntry] = {}
        discarded = 0
        for key, document in raw.items():
            try:
                entry = entry_type.model_validate(document)
            except ValidationError:
                discarded += 1
                continue
            if entry.key != key:
                discarded += 1
                continue
            loaded[key] = entry

        if discarded:
            logger.warning(f"Discarded {discarded} malformed {kind.value} cache entries")
        return loaded

    def _persist(self, kind: CacheKind, entries: Mapping[str, CacheEntry]) -> None:
        documents = {key: entry.model_dump(mode="json") for key, entry in entries.items()}
        try:
            self.storage.save(kind, documents)
        except OSError as exc:
            logger.error(f"Failed to persist {kind.value} cache: {exc}")

    def is_expired(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.cached_at > self.ttl

    def get(self, kind: CacheKind, key: str) -> CacheEntry | None:
        entry = self._entries[kind].get(key)
        if entry is None or self.is_expired(entry):
            return None
        return entry

    def set(self, kind: CacheKind, key: str, payload: BaseModel) -> CacheEntry:
        payload_type = PAYLOAD_TYPES[kind]
        if not isinstance(payload, payload_type):
            raise TypeError(
                f"{kind.value} cache expects {payload_type.__name__}, got {type(payload).__name__}"
            )

        entry = CacheEntry[payload_type](key=key, cached_at=self._clock(), payload=payload)
        updated = {**self._entries[kind], key: entry}
        self._entries[kind] = updated
        self._persist(kind, updated)
        return entry

    def delete(self, kind: CacheKind, key: str) -> None:
        current = self._entries[kind]
        if key not in current:
            return
        updated = {k: v for k, v in current.items() if k != key}
        self._entries[kind] = updated
        self._persist(kind, updated)

    def sweep(self) -> int:
        """Drop expired entries from every kind. Returns the number removed."""
        removed = 0
        for kind in CacheKind:
            current = self._entries[kind]
            kept = {k: v for k, v in current.items() if not self.is_expired(v)}
            if len(kept) == len(current):
                continue
            removed += len(current) - len(kept)
            self._entries[kind] = kept
            self._persist(kind, kept)
        return removed

    def get_scraped(self, link: str) -> ScrapedContent | None:
        entry = self.get(CacheKind.SCRAPED, link)
        return entry.payload if entry else None

    def set_scraped(self, link: str, content: ScrapedContent) -> None:
        self.set(CacheKind.SCRAPED, link, content)

    def get_summary(self, article_id: str) -> ArticleSummary | None:
        entry = self.get(CacheKind.SUMMARY, article_id)
        return entry.payload if entry else None

    def set_summary(self, article_id: str, summary: ArticleSummary) -> None:
        self.set(CacheKind.SUMMARY, article_id, summary)

    def get_chat(self, article_id: str) -> ChatThread | None:
        entry = self.get(CacheKind.CHAT, article_id)
        return entry.payload if entry else None

    def set_chat(self, article_id: str, thread: ChatThread) -> None:
        self.set(CacheKind.CHAT, article_id, thread)

    def append_chat(self, article_id: str, *messages: ChatMessage) -> ChatThread:
        existing = self.get_chat(article_id)
        history = list(existing.messages) if existing else []
        thread = ChatThread(messages=[*history, *messages])
        self.set_chat(article_id, thread)
        return thread

    def clear_chat(self, article_id: str) -> None:
        self.delete(CacheKind.CHAT, article_id)


def cache_from_settings() -> ArticleCache:
    return ArticleCache(
        JsonFileStorage(settings.cache_dir),
        ttl=timedelta(days=max(int(settings.cache_ttl_days), 0)),
    )
