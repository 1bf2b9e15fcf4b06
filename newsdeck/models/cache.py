"""Versioned record types for the three article cache kinds."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, Field, field_validator

SCHEMA_VERSION = 1


class CacheKind(str, Enum):
    SCRAPED = "scraped"
    SUMMARY = "summary"
    CHAT = "chat"


class ScrapedContent(BaseModel):
    """Primary content extracted from an article page."""

    title: str = ""
    html_body: str = ""
    plain_text: str
    excerpt: str = ""
    byline: str | None = None
    site_name: str | None = None
    length: int = 0


class RelatedRef(BaseModel):
    title: str
    source: str = "Unknown"
    url: str = ""
    score: float = 0.0


class WebRef(BaseModel):
    title: str
    url: str
    snippet: str = ""


class ArticleSummary(BaseModel):
    summary_text: str
    related: list[RelatedRef] = Field(default_factory=list)
    web_results: list[WebRef] = Field(default_factory=list)


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    text: str
    web_results: list[WebRef] = Field(default_factory=list)
    is_error: bool = False


class ChatThread(BaseModel):
    messages: list[ChatMessage] = Field(default_factory=list)


PayloadT = TypeVar("PayloadT", bound=BaseModel)


class CacheEntry(BaseModel, Generic[PayloadT]):
    version: int = SCHEMA_VERSION
    key: str
    cached_at: datetime
    payload: PayloadT

    @field_validator("version")
    @classmethod
    def _current_version_only(cls, value: int) -> int:
        if value != SCHEMA_VERSION:
            raise ValueError(f"unsupported cache schema version {value}")
        return value

    @field_validator("cached_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


PAYLOAD_TYPES: dict[CacheKind, type[BaseModel]] = {
    CacheKind.SCRAPED: ScrapedContent,
    CacheKind.SUMMARY: ArticleSummary,
    CacheKind.CHAT: ChatThread,
}
