from __future__ import annotations

from unittest.mock import patch

import pytest

from newsdeck.models.cache import WebRef
from newsdeck.tools import brave_search, duckduckgo_search, tavily_search
from newsdeck.tools.duckduckgo_search import parse_duckduckgo_results, parse_mojeek_results

DDG_HTML = """
<div class="results">
  <div class="result">
    <a class="result__a" href="//duckduckgo.com/l/?uddg=https%3A%2F%2Fpublisher.example.com%2Fa&rut=x">First result</a>
    <a class="result__snippet">Snippet one</a>
  </div>
  <div class="result result--ad">
    <a class="result__a" href="/y.js?ad=1">Sponsored</a>
  </div>
  <div class="result">
    <a class="result__a" href="https://other.example.com/b">Second result</a>
  </div>
</div>
"""

MOJEEK_HTML = """
<ul class="results-standard">
  <li><a class="title" href="https://m.example.com/1">Mojeek one</a><p class="s">About one</p></li>
  <li><a class="title">No link</a></li>
</ul>
"""

REFS = [WebRef(title="t", url="https://r.example.com", snippet="s")]


def test_parse_duckduckgo_results_resolves_redirects_and_skips_ads():
    results = parse_duckduckgo_results(DDG_HTML, max_results=5)

    assert [r.url for r in results] == ["https://publisher.example.com/a", "https://other.example.com/b"]
    assert results[0].snippet == "Snippet one"
    assert results[1].snippet == ""


def test_parse_duckduckgo_results_honours_limit():
    assert len(parse_duckduckgo_results(DDG_HTML, max_results=1)) == 1


def test_parse_mojeek_results():
    results = parse_mojeek_results(MOJEEK_HTML)

    assert results == [WebRef(title="Mojeek one", url="https://m.example.com/1", snippet="About one")]


@pytest.mark.asyncio
async def test_search_provider_defaults_to_duckduckgo(monkeypatch):
    from newsdeck.tools import search_provider

    async def fake_search(query, *, max_results=5, timeout=None):
        return REFS[:max_results]

    monkeypatch.setattr(duckduckgo_search, "search", fake_search)
    with patch("newsdeck.tools.search_provider.settings") as mock_settings:
        mock_settings.search_provider = "duckduckgo"
        mock_settings.search_fallback_to_tavily = False
        mock_settings.tavily_api_key = ""
        mock_settings.search_max_results = 5

        response = await search_provider.search("rates")

    assert response.provider == "duckduckgo"
    assert response.results == REFS


@pytest.mark.asyncio
async def test_brave_falls_back_to_tavily_when_enabled(monkeypatch):
    from newsdeck.tools import search_provider

    async def failing_brave(query, max_results=5):
        raise RuntimeError("BRAVE_API_KEY is not configured")

    async def fake_tavily(query, max_results=5):
        return REFS

    monkeypatch.setattr(brave_search, "search", failing_brave)
    monkeypatch.setattr(tavily_search, "search", fake_tavily)
    with patch("newsdeck.tools.search_provider.settings") as mock_settings:
        mock_settings.search_provider = "brave"
        mock_settings.search_fallback_to_tavily = True
        mock_settings.tavily_api_key = "tvly-test"
        mock_settings.search_max_results = 5

        response = await search_provider.search("rates")

    assert response.provider == "tavily"
    assert response.fallback_from == "brave"
    assert "BRAVE_API_KEY" in response.fallback_reason


@pytest.mark.asyncio
async def test_brave_failure_propagates_without_fallback(monkeypatch):
    from newsdeck.tools import search_provider

    async def failing_brave(query, max_results=5):
        raise RuntimeError("brave down")

    monkeypatch.setattr(brave_search, "search", failing_brave)
    with patch("newsdeck.tools.search_provider.settings") as mock_settings:
        mock_settings.search_provider = "brave"
        mock_settings.search_fallback_to_tavily = False
        mock_settings.tavily_api_key = ""
        mock_settings.search_max_results = 5

        with pytest.raises(RuntimeError):
            await search_provider.search("rates")


@pytest.mark.asyncio
async def test_search_provider_raises_when_provider_unsupported():
    with patch("newsdeck.tools.search_provider.settings") as mock_settings:
        mock_settings.search_provider = "unknown-provider"
        mock_settings.search_max_results = 5

        from newsdeck.tools import search_provider

        with pytest.raises(ValueError):
            await search_provider.search("query")


@pytest.mark.asyncio
async def test_web_searcher_returns_plain_results(monkeypatch):
    from newsdeck.tools import search_provider

    async def fake_search(query, *, max_results=None):
        return search_provider.SearchResponse(results=REFS, provider="tavily", fallback_from="brave")

    monkeypatch.setattr(search_provider, "search", fake_search)

    assert await search_provider.WebSearcher().search("q", 3) == REFS
