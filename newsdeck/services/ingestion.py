"""Merge, order, de-duplicate and age-filter per-source article lists."""
from __future__ import annotations

import asyncio
import re
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Awaitable, Callable, Iterable, Sequence

from loguru import logger

from newsdeck.models.article import Article
from newsdeck.services.working_set import WorkingSet

FeedFetcher = Callable[[str], Awaitable[list[Article]]]

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class AgeFilter(str, Enum):
    ALL = "all"
    ONE_DAY = "1day"
    THREE_DAYS = "3days"
    SEVEN_DAYS = "7days"

    @property
    def window(self) -> timedelta | None:
        return {
            AgeFilter.ALL: None,
            AgeFilter.ONE_DAY: timedelta(days=1),
            AgeFilter.THREE_DAYS: timedelta(days=3),
            AgeFilter.SEVEN_DAYS: timedelta(days=7),
        }[self]


def merge_source_results(results: Iterable[Sequence[Article] | BaseException]) -> list[Article]:
    """Concatenate every source that fetched successfully; failed sources are skipped."""
    merged: list[Article] = []
    for result in results:
        if isinstance(result, BaseException):
            logger.warning(f"Skipping feed source that failed to load: {result}")
            continue
        merged.extend(result)
    return merged


def _timestamp(article: Article) -> datetime:
    published = article.published_at
    if published is None:
        return _EPOCH
    if published.tzinfo is None:
        return published.replace(tzinfo=timezone.utc)
    return published


def sort_newest_first(articles: Iterable[Article]) -> list[Article]:
    # sorted() is stable with reverse=True, so ties keep source order
    return sorted(articles, key=_timestamp, reverse=True)


def link_key(link: str | None) -> str:
    return (link or "").strip().lower()


def normalize_title(title: str | None) -> str:
    text = (title or "").lower()
    text = re.sub(r"[^\w\s]", "", text)
    text = re.sub(r"\s+", " ", text)
    return text.strip()


def deduplicate(articles: Iterable[Article]) -> list[Article]:
    """Drop any item whose link or normalized title was already seen. First wins."""
    seen_links: set[str] = set()
    seen_titles: set[str] = set()
    unique: list[Article] = []

    for article in articles:
        url = link_key(article.link)
        title = normalize_title(article.title)
        if url and url in seen_links:
            continue
        if title and title in seen_titles:
            continue
        if url:
            seen_links.add(url)
        if title:
            seen_titles.add(title)
        unique.append(article)

    return unique


def normalize(results: Iterable[Sequence[Article] | BaseException]) -> list[Article]:
    return deduplicate(sort_newest_first(merge_source_results(results)))


def filter_by_age(
    articles: Iterable[Article],
    age_filter: AgeFilter | str = AgeFilter.ALL,
    *,
    now: datetime | None = None,
) -> list[Article]:
    """Keep items newer than ``now - window``. Never mutates the input."""
    window = AgeFilter(age_filter).window
    if window is None:
        return list(articles)

    cutoff = (now or datetime.now(timezone.utc)) - window
    if cutoff.tzinfo is None:
        cutoff = cutoff.replace(tzinfo=timezone.utc)
    return [
        article
        for article in articles
        if article.published_at is not None and _timestamp(article) >= cutoff
    ]


async def refresh_group(
    working_set: WorkingSet,
    key: str,
    feed_urls: Sequence[str],
    *,
    fetch: FeedFetcher | None = None,
) -> tuple[Article, ...]:
    """Fetch every source of a grouping concurrently and swap in the normalized result."""
    if fetch is None:
        from newsdeck.tools.feed_reader import fetch_feed

        fetch = fetch_feed

    results = await asyncio.gather(*(fetch(url) for url in feed_urls), return_exceptions=True)
    failed = sum(1 for result in results if isinstance(result, BaseException))
    articles = normalize(results)
    logger.info(
        f"Refreshed grouping {key!r}: {len(articles)} articles from "
        f"{len(feed_urls) - failed}/{len(feed_urls)} sources"
    )
    return working_set.replace_group(key, articles)
