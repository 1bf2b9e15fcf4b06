from __future__ import annotations

from datetime import datetime, timezone

import httpx
import pytest

from newsdeck.tools import feed_reader
from newsdeck.tools.feed_reader import FeedError, normalize_feed_url, parse_feed

RSS = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:content="http://purl.org/rss/1.0/modules/content/"
     xmlns:dc="http://purl.org/dc/elements/1.1/">
  <channel>
    <title>Harbour Times</title>
    <link>https://harbour.example.com</link>
    <item>
      <title>Ferry service resumes after storm</title>
      <link>https://harbour.example.com/ferry</link>
      <guid>harbour-ferry-1</guid>
      <pubDate>Sun, 01 Mar 2026 09:30:00 GMT</pubDate>
      <description>Short teaser about the ferry.</description>
      <content:encoded><![CDATA[<p>Full body of the ferry story.</p>]]></content:encoded>
      <dc:creator>Jo Marsh</dc:creator>
    </item>
    <item>
      <title>Market stalls return</title>
      <link>https://harbour.example.com/market</link>
      <description>Undated item.</description>
    </item>
    <item>
      <description>No title at all.</description>
    </item>
  </channel>
</rss>
"""


def test_parse_feed_maps_entries():
    articles = parse_feed(RSS)

    assert [a.title for a in articles] == ["Ferry service resumes after storm", "Market stalls return"]
    ferry, market = articles
    assert ferry.id == "harbour-ferry-1"
    assert ferry.published_at == datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)
    assert "Full body of the ferry story." in ferry.body_html
    assert ferry.snippet
    assert ferry.author == "Jo Marsh"
    assert ferry.source_name == "Harbour Times"
    assert market.id == "https://harbour.example.com/market"
    assert market.published_at is None


def test_parse_feed_source_name_override():
    articles = parse_feed(RSS, source_name="Local")
    assert {a.source_name for a in articles} == {"Local"}


def test_normalize_feed_url_adds_scheme():
    assert normalize_feed_url("example.com/rss") == "http://example.com/rss"
    assert normalize_feed_url(" https://example.com/rss ") == "https://example.com/rss"


@pytest.mark.asyncio
async def test_fetch_feed_raises_on_http_error(monkeypatch):
    class FailingClient:
        def __init__(self, *args, **kwargs):
            pass

        async def __aenter__(self):
            return self

        async def __aexit__(self, *exc):
            return False

        async def get(self, url):
            raise httpx.ConnectError("refused", request=httpx.Request("GET", url))

    monkeypatch.setattr(feed_reader.httpx, "AsyncClient", FailingClient)

    with pytest.raises(FeedError):
        await feed_reader.fetch_feed("https://down.example.com/rss")


@pytest.mark.asyncio
async def test_fetch_feed_parses_response(monkeypatch):
    class FeedClient:
        def __init__(self, *args, **kwargs):
            pass

        async def __aenter__(self):
            return self

        async def __aexit__(self, *exc):
            return False

        async def get(self, url):
            return httpx.Response(200, content=RSS, request=httpx.Request("GET", url))

    monkeypatch.setattr(feed_reader.httpx, "AsyncClient", FeedClient)

    articles = await feed_reader.fetch_feed("harbour.example.com/rss")

    assert len(articles) == 2


@pytest.mark.asyncio
async def test_fetch_feed_rejects_empty_url():
    with pytest.raises(FeedError):
        await feed_reader.fetch_feed("  ")
