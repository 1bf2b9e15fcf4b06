from __future__ import annotations

import html
import re
from urllib.parse import urlparse

# Links that never lead to a readable article body
NON_ARTICLE_HOSTS = (
    "twitter.com",
    "x.com",
    "facebook.com",
    "linkedin.com",
    "instagram.com",
    "t.me",
)
_IMAGE_RE = re.compile(r"\.(jpg|jpeg|png|gif|svg|webp|ico)(\?|$)", re.IGNORECASE)
_HREF_RE = re.compile(r"""href=["']?(https?://[^"'\s>]+)""", re.IGNORECASE)
_BARE_URL_RE = re.compile(r"""https?://[^\s<>"'\]]+""", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]*>")


def is_valid_url(url: str) -> bool:
    """Basic URL validation."""
    try:
        result = urlparse(url)
        return all([result.scheme in ("http", "https"), result.netloc])
    except ValueError:
        return False


def extract_domain(url: str) -> str:
    """Extract domain from URL for display."""
    try:
        return urlparse(url).netloc
    except ValueError:
        return url


def strip_tags(text: str) -> str:
    """Drop markup and collapse whitespace."""
    text = html.unescape(_TAG_RE.sub(" ", text or ""))
    return re.sub(r"\s+", " ", text).strip()


def is_non_article_url(url: str) -> bool:
    host = extract_domain(url).lower()
    if host.startswith("www."):
        host = host[4:]
    if any(host == blocked or host.endswith("." + blocked) for blocked in NON_ARTICLE_HOSTS):
        return True
    return bool(_IMAGE_RE.search(url))


def find_embedded_article_url(markup: str, exclude_url: str = "") -> str | None:
    """First link in a feed body that plausibly points at the real article.

    Aggregator feeds often link to a comments page while the body carries the
    actual story link; anchors are preferred over bare URLs in text.
    """
    if not markup:
        return None

    decoded = html.unescape(markup)
    exclude = exclude_url.strip()

    for match in _HREF_RE.finditer(decoded):
        url = match.group(1)
        if url != exclude and not is_non_article_url(url):
            return url

    for match in _BARE_URL_RE.finditer(decoded):
        url = match.group(0).rstrip(".,;:!?)")
        if url != exclude and not is_non_article_url(url):
            return url

    return None
