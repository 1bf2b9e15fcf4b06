from __future__ import annotations

import json
from datetime import timedelta
from pathlib import Path

import pytest

from conftest import NOW, MutableClock, long_content
from newsdeck.models.cache import (
    ArticleSummary,
    CacheKind,
    ChatMessage,
    ChatThread,
    ScrapedContent,
)
from newsdeck.services.article_cache import ArticleCache, JsonFileStorage, MemoryStorage


def test_entry_is_served_within_ttl_and_absent_after(cache: ArticleCache, clock: MutableClock):
    cache.set_summary("article-1", ArticleSummary(summary_text="- point"))

    clock.advance(days=6)
    assert cache.get_summary("article-1").summary_text == "- point"

    clock.advance(days=2)
    assert cache.get_summary("article-1") is None


def test_kinds_are_independent_namespaces(cache: ArticleCache):
    cache.set_summary("same-key", ArticleSummary(summary_text="summary"))

    assert cache.get_chat("same-key") is None
    assert cache.get_scraped("same-key") is None


def test_set_rejects_payload_of_wrong_kind(cache: ArticleCache):
    with pytest.raises(TypeError):
        cache.set(CacheKind.SUMMARY, "x", ChatThread())


def test_append_and_clear_chat(cache: ArticleCache):
    cache.append_chat("a", ChatMessage(role="user", text="why?"))
    thread = cache.append_chat("a", ChatMessage(role="assistant", text="because"))

    assert [m.role for m in thread.messages] == ["user", "assistant"]
    assert len(cache.get_chat("a").messages) == 2

    cache.clear_chat("a")
    assert cache.get_chat("a") is None


def test_sweep_removes_only_expired_entries(cache: ArticleCache, clock: MutableClock):
    cache.set_summary("old", ArticleSummary(summary_text="old"))
    clock.advance(days=5)
    cache.set_summary("new", ArticleSummary(summary_text="new"))
    clock.advance(days=3)

    assert cache.sweep() == 1
    assert cache.get_summary("new") is not None
    assert cache.get(CacheKind.SUMMARY, "old") is None


def test_json_storage_round_trip_across_instances(tmp_path: Path):
    clock = MutableClock()
    first = ArticleCache(JsonFileStorage(tmp_path), clock=clock)
    first.set_scraped("https://news.example.com/a", long_content())

    reopened = ArticleCache(JsonFileStorage(tmp_path), clock=clock)

    content = reopened.get_scraped("https://news.example.com/a")
    assert isinstance(content, ScrapedContent)
    assert content.plain_text == long_content().plain_text


def test_corrupted_file_loads_as_empty_cache(tmp_path: Path):
    (tmp_path / "summary.json").write_text("{not json", encoding="utf-8")

    cache = ArticleCache(JsonFileStorage(tmp_path))

    assert cache.get_summary("anything") is None
    cache.set_summary("anything", ArticleSummary(summary_text="ok"))
    assert json.loads((tmp_path / "summary.json").read_text())["entries"]["anything"]


def test_legacy_and_malformed_entries_are_discarded():
    storage = MemoryStorage(
        {
            CacheKind.SUMMARY: {
                "legacy": {
                    "version": 0,
                    "key": "legacy",
                    "cached_at": NOW.isoformat(),
                    "payload": {"summary_text": "old format"},
                },
                "broken": {"version": 1, "key": "broken", "cached_at": NOW.isoformat(), "payload": {}},
                "good": {
                    "version": 1,
                    "key": "good",
                    "cached_at": NOW.isoformat(),
                    "payload": {"summary_text": "fine"},
                },
            }
        }
    )

    cache = ArticleCache(storage, clock=MutableClock())

    assert cache.get_summary("legacy") is None
    assert cache.get_summary("broken") is None
    assert cache.get_summary("good").summary_text == "fine"


def test_naive_timestamps_are_read_as_utc():
    storage = MemoryStorage(
        {
            CacheKind.SUMMARY: {
                "naive": {
                    "version": 1,
                    "key": "naive",
                    "cached_at": NOW.replace(tzinfo=None).isoformat(),
                    "payload": {"summary_text": "ok"},
                }
            }
        }
    )

    cache = ArticleCache(storage, ttl=timedelta(hours=1), clock=MutableClock(NOW + timedelta(minutes=30)))

    assert cache.get_summary("naive") is not None


def test_writes_go_through_storage(clock: MutableClock):
    storage = MemoryStorage()
    cache = ArticleCache(storage, clock=clock)

    cache.set_summary("a", ArticleSummary(summary_text="x"))
    cache.delete(CacheKind.SUMMARY, "missing")

    assert storage.save_count == 1
    assert storage.documents[CacheKind.SUMMARY]["a"]["payload"]["summary_text"] == "x"
