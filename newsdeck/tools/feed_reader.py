"""RSS/Atom source fetching: one feed URL in, a list of Articles out."""
from __future__ import annotations

import calendar
from datetime import datetime, timezone
from typing import Any

import feedparser
import httpx
from loguru import logger

from newsdeck.config import settings
from newsdeck.models.article import Article, article_id_for


class FeedError(RuntimeError):
    pass


def normalize_feed_url(url: str) -> str:
    url = (url or "").strip()
    if url and "://" not in url:
        return f"http://{url}"
    return url


def _entry_value(entry: Any, name: str) -> str:
    value = entry.get(name) if hasattr(entry, "get") else getattr(entry, name, None)
    return str(value).strip() if value else ""


def _entry_published(entry: Any) -> datetime | None:
    for name in ("published_parsed", "updated_parsed", "created_parsed"):
        parsed = entry.get(name)
        if parsed:
            return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)
    return None


def _entry_body(entry: Any) -> str:
    # content:encoded lands in entry.content as a list of {type, value}
    for block in entry.get("content") or []:
        value = block.get("value") if hasattr(block, "get") else None
        if value:
            return str(value)
    return ""


def parse_feed(raw: bytes | str, *, source_name: str = "") -> list[Article]:
    """Map parsed feed entries onto Articles. Entries without a title are skipped."""
    feed = feedparser.parse(raw)
    if feed.get("bozo") and not feed.entries:
        raise FeedError(f"Unparseable feed: {feed.get('bozo_exception')}")

    feed_title = _entry_value(feed.get("feed", {}), "title")
    source = source_name or feed_title

    articles: list[Article] = []
    for entry in feed.entries:
        title = _entry_value(entry, "title")
        if not title:
            continue
        link = _entry_value(entry, "link")
        published = _entry_published(entry)
        guid = _entry_value(entry, "id")
        articles.append(
            Article(
                id=article_id_for(guid, link, title, _entry_value(entry, "published")),
                title=title,
                link=link,
                published_at=published,
                body_html=_entry_body(entry),
                snippet=_entry_value(entry, "summary"),
                source_name=source,
                author=_entry_value(entry, "author"),
            )
        )
    return articles


async def fetch_feed(url: str, *, source_name: str = "", timeout: float | None = None) -> list[Article]:
    """Fetch one source. Network and parse failures raise so the caller can count them."""
    feed_url = normalize_feed_url(url)
    if not feed_url:
        raise FeedError("Feed URL is empty")

    headers = {"User-Agent": settings.feed_user_agent}
    try:
        async with httpx.AsyncClient(
            timeout=timeout or settings.feed_timeout_seconds,
            follow_redirects=True,
            headers=headers,
        ) as client:
            response = await client.get(feed_url)
            response.raise_for_status()
    except httpx.HTTPError as exc:
        logger.warning(f"Feed fetch failed for {feed_url}: {exc}")
        raise FeedError(f"Could not fetch {feed_url}: {exc}") from exc

    articles = parse_feed(response.content, source_name=source_name)
    logger.debug(f"Parsed {len(articles)} entries from {feed_url}")
    return articles
