from __future__ import annotations

import asyncio
import html
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import httpx
from bs4 import BeautifulSoup

from newsdeck.config import settings
from newsdeck.models.cache import ScrapedContent
from newsdeck.tools.web_utils import is_valid_url

EXCERPT_CHARS = 200
_BOILERPLATE_TAGS = ("script", "style", "noscript", "nav", "header", "footer", "aside", "form")


class ExtractionError(RuntimeError):
    """The page could not be fetched or has no extractable primary content."""


@dataclass
class FetchedPage:
    url: str
    final_url: str
    status_code: int
    html: str


PageFetcher = Callable[[str, float], Awaitable[FetchedPage]]


def _normalize_text(text: str) -> str:
    text = text.replace("\xa0", " ")
    text = re.sub(r"\r\n?", "\n", text)
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def _truncate(text: str, max_chars: int) -> str:
    if max_chars <= 0 or len(text) <= max_chars:
        return text
    return text[:max_chars] + "..."


def _meta_content(soup: BeautifulSoup, *names: str) -> str | None:
    for name in names:
        tag = soup.find("meta", attrs={"property": name}) or soup.find("meta", attrs={"name": name})
        if tag and tag.get("content"):
            return _normalize_text(str(tag["content"]))
    return None


def _extract_with_trafilatura(raw_html: str, url: str) -> dict[str, Any]:
    import trafilatura

    document = trafilatura.bare_extraction(
        raw_html,
        url=url,
        with_metadata=True,
        include_comments=False,
    )
    if document is None:
        return {}
    if not isinstance(document, dict):
        document = document.as_dict()

    body_html = trafilatura.extract(
        raw_html,
        url=url,
        output_format="html",
        include_comments=False,
    )
    return {
        "title": document.get("title") or "",
        "text": _normalize_text(document.get("text") or ""),
        "html_body": body_html or "",
        "byline": document.get("author"),
        "site_name": document.get("sitename"),
        "excerpt": document.get("description") or "",
    }


def _extract_with_soup(soup: BeautifulSoup) -> tuple[str, str]:
    for tag in soup(_BOILERPLATE_TAGS):
        tag.decompose()

    root = soup.find("article") or soup.find("main") or soup.body or soup
    paragraphs = [p.get_text(" ", strip=True) for p in root.find_all("p")]
    paragraphs = [p for p in paragraphs if p]
    if not paragraphs:
        text = _normalize_text(root.get_text("\n"))
        paragraphs = [chunk for chunk in text.split("\n\n") if chunk.strip()]

    text = _normalize_text("\n\n".join(paragraphs))
    html_body = "".join(f"<p>{html.escape(p)}</p>" for p in paragraphs)
    return text, html_body


def extract_article(url: str, raw_html: str, *, max_chars: int | None = None) -> ScrapedContent:
    """Extract the primary article content of a fetched page."""
    target_chars = max_chars if max_chars is not None else int(settings.extractor_max_page_chars)
    soup = BeautifulSoup(raw_html, "html.parser")
    page_title = _normalize_text(soup.title.string) if soup.title and soup.title.string else ""
    site_name = _meta_content(soup, "og:site_name")
    description = _meta_content(soup, "og:description", "description")
    byline = _meta_content(soup, "author", "article:author")

    extracted = _extract_with_trafilatura(raw_html, url)
    text = extracted.get("text", "")
    html_body = extracted.get("html_body", "")
    if not text:
        text, html_body = _extract_with_soup(soup)

    if not text:
        raise ExtractionError(
            "Could not extract article content. The page may not be a standard article."
        )

    text = _truncate(text, target_chars)
    excerpt = extracted.get("excerpt") or description or text[:EXCERPT_CHARS]
    return ScrapedContent(
        title=extracted.get("title") or page_title,
        html_body=html_body,
        plain_text=text,
        excerpt=excerpt,
        byline=extracted.get("byline") or byline,
        site_name=extracted.get("site_name") or site_name,
        length=len(text),
    )


async def fetch_page(url: str, timeout: float) -> FetchedPage:
    async with httpx.AsyncClient(timeout=max(timeout, 1.0), follow_redirects=True) as client:
        response = await client.get(
            url,
            headers={
                "User-Agent": settings.scrape_user_agent,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Accept-Language": "en-US,en;q=0.5",
            },
        )
        response.raise_for_status()
        return FetchedPage(
            url=url,
            final_url=str(response.url),
            status_code=int(response.status_code),
            html=response.text,
        )


class PageExtractor:
    """Fetch a page over HTTP and reduce it to its readable article body."""

    def __init__(
        self,
        *,
        fetcher: PageFetcher | None = None,
        timeout: float | None = None,
    ):
        self._fetcher = fetcher or fetch_page
        self.timeout = float(timeout if timeout is not None else settings.scrape_timeout_seconds)

    async def extract(self, url: str) -> ScrapedContent:
        if not is_valid_url(url):
            raise ExtractionError(f"Invalid URL: {url!r}")

        try:
            page = await self._fetcher(url, self.timeout)
        except httpx.HTTPStatusError as exc:
            raise ExtractionError(
                f"Failed to fetch article: {exc.response.status_code}"
            ) from exc
        except httpx.TimeoutException as exc:
            raise ExtractionError(
                "Request timed out. The article page took too long to load."
            ) from exc
        except httpx.HTTPError as exc:
            raise ExtractionError(f"Failed to fetch article: {exc}") from exc

        # trafilatura is CPU-bound; keep it off the event loop
        return await asyncio.to_thread(extract_article, page.final_url, page.html)
