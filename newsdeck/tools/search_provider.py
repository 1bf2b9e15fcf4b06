from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable

from loguru import logger

from newsdeck.config import settings
from newsdeck.models.cache import WebRef
from newsdeck.tools import brave_search, duckduckgo_search, tavily_search


@dataclass
class SearchResponse:
    results: list[WebRef]
    provider: str
    fallback_from: str | None = None
    fallback_reason: str | None = None


def _providers() -> dict[str, Callable[..., Awaitable[list[WebRef]]]]:
    return {
        "duckduckgo": duckduckgo_search.search,
        "brave": brave_search.search,
        "tavily": tavily_search.search,
    }


async def search(query: str, *, max_results: int | None = None) -> SearchResponse:
    """Dispatch to the configured provider. An empty result list is a valid answer.

    Brave is the only provider with a fallback: Tavily takes over when Brave
    errors or finds nothing, provided the fallback is enabled and keyed.
    """
    name = settings.search_provider.lower().strip()
    limit = max_results if max_results is not None else settings.search_max_results
    provider = _providers().get(name)
    if provider is None:
        raise ValueError(f"Unsupported SEARCH_PROVIDER: {settings.search_provider}")

    can_fall_back = (
        name == "brave" and settings.search_fallback_to_tavily and bool(settings.tavily_api_key)
    )
    try:
        results = await provider(query, max_results=limit)
    except Exception as exc:
        if not can_fall_back:
            raise
        logger.warning(f"Brave search failed, falling back to Tavily: {exc}")
        reason = str(exc)
    else:
        if results or not can_fall_back:
            return SearchResponse(results=results, provider=name)
        reason = "brave returned zero results"

    fallback_results = await tavily_search.search(query, max_results=limit)
    return SearchResponse(
        results=fallback_results,
        provider="tavily",
        fallback_from="brave",
        fallback_reason=reason,
    )


class WebSearcher:
    """Search collaborator for the research pipeline: ``search(query, max_results)``."""

    async def search(self, query: str, max_results: int) -> list[WebRef]:
        response = await search(query, max_results=max_results)
        if response.fallback_from:
            logger.info(
                f"Search served by {response.provider} (fallback from "
                f"{response.fallback_from}: {response.fallback_reason})"
            )
        return response.results
