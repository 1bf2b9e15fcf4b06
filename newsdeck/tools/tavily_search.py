from __future__ import annotations

from tavily import AsyncTavilyClient

from newsdeck.config import settings
from newsdeck.models.cache import WebRef

SNIPPET_CHARS = 500


async def search(query: str, *, max_results: int = 5, days: int = 30) -> list[WebRef]:
    """Tavily news search limited to the last ``days`` days."""
    if not settings.tavily_api_key:
        raise RuntimeError("TAVILY_API_KEY is not configured")

    response = await AsyncTavilyClient(api_key=settings.tavily_api_key).search(
        query=query,
        search_depth="basic",
        topic="news",
        days=days,
        max_results=max_results,
    )

    refs: list[WebRef] = []
    for hit in response.get("results") or []:
        url = hit.get("url") or ""
        if not url:
            continue
        refs.append(
            WebRef(
                title=hit.get("title") or url,
                url=url,
                snippet=(hit.get("content") or "")[:SNIPPET_CHARS],
            )
        )
    return refs
