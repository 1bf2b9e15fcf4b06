from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Iterator, Mapping

from loguru import logger

from newsdeck.models.article import Article


class WorkingSet:
    """Currently displayed articles, grouped by column, plus an id -> group index.

    Updates are copy-on-write: each mutation builds fresh mappings and swaps
    the references, so a reader never sees a half-applied refresh.
    """

    def __init__(self) -> None:
        self._groups: Mapping[str, tuple[Article, ...]] = MappingProxyType({})
        self._index: Mapping[str, str] = MappingProxyType({})

    def replace_group(self, key: str, articles: Iterable[Article]) -> tuple[Article, ...]:
        """Replace a grouping wholesale and rebuild only its reverse-index entries."""
        index = {aid: group for aid, group in self._index.items() if group != key}

        kept: list[Article] = []
        skipped = 0
        for article in articles:
            owner = index.get(article.id)
            if owner is not None:
                # Already claimed by another grouping, or a repeat within this one.
                skipped += 1
                continue
            index[article.id] = key
            kept.append(article)

        if skipped:
            logger.debug(f"Grouping {key!r}: skipped {skipped} articles already owned elsewhere")

        group = tuple(kept)
        self._groups = MappingProxyType({**self._groups, key: group})
        self._index = MappingProxyType(index)
        return group

    def remove_group(self, key: str) -> None:
        if key not in self._groups:
            return
        self._groups = MappingProxyType({k: v for k, v in self._groups.items() if k != key})
        self._index = MappingProxyType({aid: g for aid, g in self._index.items() if g != key})

    def articles(self, key: str) -> tuple[Article, ...]:
        return self._groups.get(key, ())

    def group_for(self, article_id: str) -> str | None:
        return self._index.get(article_id)

    def find(self, article_id: str) -> Article | None:
        key = self._index.get(article_id)
        if key is None:
            return None
        for article in self._groups.get(key, ()):
            if article.id == article_id:
                return article
        return None

    def groups(self) -> Mapping[str, tuple[Article, ...]]:
        return self._groups

    def all_articles(self) -> list[Article]:
        return [article for group in self._groups.values() for article in group]

    def __iter__(self) -> Iterator[Article]:
        return iter(self.all_articles())

    def __len__(self) -> int:
        return len(self._index)
