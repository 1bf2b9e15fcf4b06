from __future__ import annotations

import httpx

from newsdeck.config import settings
from newsdeck.models.cache import WebRef
from newsdeck.tools.web_utils import strip_tags

BRAVE_SEARCH_URL = "https://api.search.brave.com/res/v1/web/search"


def _as_ref(item: dict) -> WebRef | None:
    url = (item.get("url") or "").strip()
    if not url:
        return None
    # Brave highlights query terms with <strong>
    snippet = strip_tags(item.get("description") or "")
    if not snippet:
        snippet = strip_tags(" ".join(item.get("extra_snippets") or []))
    return WebRef(title=strip_tags(item.get("title") or url), url=url, snippet=snippet)


async def search(
    query: str,
    *,
    max_results: int = 5,
    freshness: str | None = "pm",
    timeout: float | None = None,
) -> list[WebRef]:
    """Brave web search, biased to the past month since callers research current news."""
    api_key = settings.brave_api_key.strip()
    if not api_key:
        raise RuntimeError("BRAVE_API_KEY is not configured")

    params = {"q": query, "count": max_results}
    if freshness:
        params["freshness"] = freshness

    async with httpx.AsyncClient(
        timeout=timeout if timeout is not None else settings.search_timeout_seconds
    ) as client:
        response = await client.get(
            BRAVE_SEARCH_URL,
            params=params,
            headers={"Accept": "application/json", "X-Subscription-Token": api_key},
        )
        response.raise_for_status()

    items = (response.json().get("web") or {}).get("results") or []
    refs = [ref for ref in map(_as_ref, items) if ref is not None]
    return refs[:max_results]
