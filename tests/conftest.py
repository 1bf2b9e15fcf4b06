from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from newsdeck.llm_client import GenerationError
from newsdeck.models.article import Article
from newsdeck.models.cache import ScrapedContent, WebRef
from newsdeck.services.article_cache import ArticleCache, MemoryStorage
from newsdeck.tools.page_extractor import ExtractionError

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_article(
    article_id: str,
    title: str,
    *,
    link: str | None = None,
    hours_ago: float | None = 1,
    snippet: str = "",
    body_html: str = "",
    source_name: str = "Wire",
) -> Article:
    return Article(
        id=article_id,
        title=title,
        link=f"https://news.example.com/{article_id}" if link is None else link,
        published_at=None if hours_ago is None else NOW - timedelta(hours=hours_ago),
        body_html=body_html,
        snippet=snippet,
        source_name=source_name,
    )


def long_content(text: str = "Extracted paragraph about the central bank decision.") -> ScrapedContent:
    body = " ".join([text] * 10)
    return ScrapedContent(title="Full story", plain_text=body, length=len(body))


class MutableClock:
    def __init__(self, start: datetime = NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeExtractor:
    def __init__(self, pages: dict[str, ScrapedContent | Exception] | None = None):
        self.pages = pages or {}
        self.calls: list[str] = []

    async def extract(self, url: str) -> ScrapedContent:
        self.calls.append(url)
        page = self.pages.get(url)
        if page is None:
            raise ExtractionError(f"HTTP 404 for {url}")
        if isinstance(page, Exception):
            raise page
        return page


class FakeSearcher:
    def __init__(self, results: list[WebRef] | Exception | None = None):
        self.results = results if results is not None else []
        self.calls: list[tuple[str, int]] = []

    async def search(self, query: str, max_results: int) -> list[WebRef]:
        self.calls.append((query, max_results))
        if isinstance(self.results, Exception):
            raise self.results
        return list(self.results)


class FakeGenerator:
    def __init__(self, reply: str | Exception = "- summary bullet", *, configured: bool = True, on_call=None):
        self.reply = reply
        self.configured = configured
        self.on_call = on_call
        self.calls: list[tuple[object, str]] = []

    def is_configured(self) -> bool:
        return self.configured

    async def generate(self, prompt_or_messages, config=None, *, caller: str = "generate") -> str:
        self.calls.append((prompt_or_messages, caller))
        if self.on_call is not None:
            self.on_call()
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock()


@pytest.fixture
def cache(clock) -> ArticleCache:
    return ArticleCache(MemoryStorage(), clock=clock)


@pytest.fixture
def generation_error() -> GenerationError:
    return GenerationError("upstream 503")
