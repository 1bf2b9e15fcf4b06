from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class Article:
    """A single feed item. Superseded by the next ingestion cycle, never mutated."""

    id: str
    title: str
    link: str = ""
    published_at: datetime | None = None
    body_html: str = ""
    snippet: str = ""
    source_name: str = ""
    author: str = ""

    @property
    def text(self) -> str:
        """Title plus the richest body text the feed provided."""
        return f"{self.title} {self.body_html or self.snippet}"


def article_id_for(
    guid: str | None,
    link: str | None,
    title: str | None = None,
    published: str | None = None,
) -> str:
    """Stable article identity: feed guid, else link, else a digest of title and date."""
    for candidate in (guid, link):
        if candidate and candidate.strip():
            return candidate.strip()
    material = f"{(title or '').strip()}|{(published or '').strip()}"
    return "sha1:" + hashlib.sha1(material.encode("utf-8")).hexdigest()
