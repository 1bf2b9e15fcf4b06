from __future__ import annotations

import httpx
import pytest

from newsdeck.tools.page_extractor import (
    ExtractionError,
    FetchedPage,
    PageExtractor,
    extract_article,
)
from newsdeck.tools.web_utils import find_embedded_article_url, is_non_article_url, strip_tags

ARTICLE_HTML = """
<html>
  <head>
    <title>Council approves new cycling lanes</title>
    <meta property="og:site_name" content="City Herald">
  </head>
  <body>
    <nav><a href="/">Home</a> | <a href="/news">News</a></nav>
    <article>
      <h1>Council approves new cycling lanes</h1>
      <p>The city council voted on Tuesday to approve a network of protected cycling lanes
      across the historic centre, ending a debate that has run for almost three years.</p>
      <p>Construction of the first segment along the river embankment is expected to begin in
      the spring, with the remaining routes completed over the following eighteen months.</p>
      <p>Local business groups said they would monitor the effect on deliveries closely.</p>
    </article>
    <footer>Copyright City Herald</footer>
  </body>
</html>
"""


def test_extract_article_returns_primary_text():
    content = extract_article("https://herald.example.com/cycling", ARTICLE_HTML)

    assert "protected cycling lanes" in content.plain_text
    assert "Copyright City Herald" not in content.plain_text
    assert content.length == len(content.plain_text)
    assert content.title


def test_extract_article_truncates_to_max_chars():
    content = extract_article("https://herald.example.com/cycling", ARTICLE_HTML, max_chars=50)

    assert content.plain_text.endswith("...")
    assert len(content.plain_text) == 53


def test_extract_article_without_content_raises():
    with pytest.raises(ExtractionError):
        extract_article("https://herald.example.com/empty", "<html><body></body></html>")


@pytest.mark.asyncio
async def test_page_extractor_uses_final_url_and_fetcher():
    seen = []

    async def fetcher(url, timeout):
        seen.append((url, timeout))
        return FetchedPage(url=url, final_url=url + "?amp=0", status_code=200, html=ARTICLE_HTML)

    extractor = PageExtractor(fetcher=fetcher, timeout=4)
    content = await extractor.extract("https://herald.example.com/cycling")

    assert seen == [("https://herald.example.com/cycling", 4.0)]
    assert "cycling lanes" in content.plain_text


@pytest.mark.asyncio
async def test_page_extractor_maps_http_errors():
    async def fetcher(url, timeout):
        request = httpx.Request("GET", url)
        raise httpx.HTTPStatusError("forbidden", request=request, response=httpx.Response(403, request=request))

    with pytest.raises(ExtractionError, match="403"):
        await PageExtractor(fetcher=fetcher).extract("https://paywalled.example.com/story")


@pytest.mark.asyncio
async def test_page_extractor_rejects_invalid_url():
    async def fetcher(url, timeout):
        raise AssertionError("should not fetch")

    with pytest.raises(ExtractionError):
        await PageExtractor(fetcher=fetcher).extract("not a url")


def test_find_embedded_article_url_prefers_anchor_and_skips_excluded():
    markup = (
        '<a href="https://news.example.com/self">comments</a> '
        '<a href="https://twitter.com/someone">tweet</a> '
        '<a href="https://cdn.example.com/photo.jpg">img</a> '
        '<a href="https://publisher.example.com/story">story</a>'
    )

    assert (
        find_embedded_article_url(markup, exclude_url="https://news.example.com/self")
        == "https://publisher.example.com/story"
    )


def test_find_embedded_article_url_falls_back_to_bare_url():
    text = "Original report: https://publisher.example.com/report-42."

    assert find_embedded_article_url(text) == "https://publisher.example.com/report-42"
    assert find_embedded_article_url("no links here") is None


def test_is_non_article_url():
    assert is_non_article_url("https://www.facebook.com/post/1")
    assert is_non_article_url("https://img.example.com/a.PNG?w=300")
    assert not is_non_article_url("https://example.com/news/story")


def test_strip_tags_unescapes_and_collapses():
    assert strip_tags("<p>Fish &amp; chips</p>\n<p>today</p>") == "Fish & chips today"
