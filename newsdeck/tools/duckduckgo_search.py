from __future__ import annotations

import random
from urllib.parse import parse_qs, quote_plus, urlparse

import httpx
from bs4 import BeautifulSoup

from newsdeck.config import settings
from newsdeck.models.cache import WebRef

DUCKDUCKGO_HTML_URL = "https://html.duckduckgo.com/html/"
MOJEEK_URL = "https://www.mojeek.com/search"

USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
)


def _resolve_redirect(href: str) -> str:
    """DuckDuckGo wraps result links as /l/?uddg=<target>."""
    if "uddg=" not in href:
        return href
    parsed = urlparse(href if "://" in href else "https://duckduckgo.com" + href)
    target = parse_qs(parsed.query).get("uddg")
    return target[0] if target else href


def parse_duckduckgo_results(markup: str, max_results: int = 5) -> list[WebRef]:
    soup = BeautifulSoup(markup, "html.parser")
    results: list[WebRef] = []
    for block in soup.select(".result"):
        anchor = block.select_one("a.result__a")
        if anchor is None:
            continue
        url = _resolve_redirect(str(anchor.get("href") or ""))
        title = anchor.get_text(" ", strip=True)
        if not url or not title or url.startswith("/"):
            continue
        snippet_tag = block.select_one(".result__snippet")
        snippet = snippet_tag.get_text(" ", strip=True) if snippet_tag else ""
        results.append(WebRef(title=title, url=url, snippet=snippet))
        if len(results) >= max_results:
            break
    return results


def parse_mojeek_results(markup: str, max_results: int = 5) -> list[WebRef]:
    soup = BeautifulSoup(markup, "html.parser")
    results: list[WebRef] = []
    for item in soup.select("ul.results-standard li"):
        anchor = item.select_one("a.title")
        if anchor is None or not anchor.get("href"):
            continue
        snippet_tag = item.select_one("p.s")
        results.append(
            WebRef(
                title=anchor.get_text(" ", strip=True),
                url=str(anchor["href"]),
                snippet=snippet_tag.get_text(" ", strip=True) if snippet_tag else "",
            )
        )
        if len(results) >= max_results:
            break
    return results


async def search(
    query: str,
    *,
    max_results: int = 5,
    timeout: float | None = None,
) -> list[WebRef]:
    """Keyless web search: DuckDuckGo HTML, then Mojeek when DuckDuckGo comes back empty."""
    headers = {
        "User-Agent": random.choice(USER_AGENTS),
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
        "Referer": "https://duckduckgo.com/",
    }
    request_timeout = timeout if timeout is not None else settings.search_timeout_seconds

    async with httpx.AsyncClient(timeout=request_timeout, follow_redirects=True) as client:
        response = await client.get(
            DUCKDUCKGO_HTML_URL + "?q=" + quote_plus(query),
            headers=headers,
        )
        if response.status_code == 200:
            results = parse_duckduckgo_results(response.text, max_results)
            if results:
                return results

        fallback = await client.get(
            MOJEEK_URL,
            params={"q": query},
            headers={"User-Agent": headers["User-Agent"]},
        )
        fallback.raise_for_status()
        return parse_mojeek_results(fallback.text, max_results)
