"""Research pipeline states and results.

Each phase is its own type carrying only the data meaningful in that phase,
so a finished state cannot also carry an error and vice versa.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Union

from newsdeck.models.cache import ArticleSummary, ChatThread, RelatedRef, WebRef


class ResearchPhase(str, Enum):
    IDLE = "idle"
    SCRAPING = "scraping"
    FINDING_RELATED = "finding-related"
    SEARCHING_WEB = "searching-web"
    GENERATING = "generating"
    DONE = "done"
    ERROR = "error"


class ChatPhase(str, Enum):
    IDLE = "idle"
    AWAITING_REPLY = "awaiting-reply"


@dataclass(frozen=True)
class ResearchResult:
    article_id: str
    summary_text: str
    related: list[RelatedRef] = field(default_factory=list)
    web_results: list[WebRef] = field(default_factory=list)
    from_cache: bool = False

    @classmethod
    def from_summary(
        cls, article_id: str, summary: ArticleSummary, *, from_cache: bool = False
    ) -> "ResearchResult":
        return cls(
            article_id=article_id,
            summary_text=summary.summary_text,
            related=list(summary.related),
            web_results=list(summary.web_results),
            from_cache=from_cache,
        )

    def to_summary(self) -> ArticleSummary:
        return ArticleSummary(
            summary_text=self.summary_text,
            related=list(self.related),
            web_results=list(self.web_results),
        )


@dataclass(frozen=True)
class Idle:
    phase: ClassVar[ResearchPhase] = ResearchPhase.IDLE
    article_id: str


@dataclass(frozen=True)
class Scraping:
    phase: ClassVar[ResearchPhase] = ResearchPhase.SCRAPING
    article_id: str
    url: str


@dataclass(frozen=True)
class FindingRelated:
    phase: ClassVar[ResearchPhase] = ResearchPhase.FINDING_RELATED
    article_id: str


@dataclass(frozen=True)
class SearchingWeb:
    phase: ClassVar[ResearchPhase] = ResearchPhase.SEARCHING_WEB
    article_id: str
    query: str
    related_count: int = 0


@dataclass(frozen=True)
class Generating:
    phase: ClassVar[ResearchPhase] = ResearchPhase.GENERATING
    article_id: str
    related_count: int = 0
    web_count: int = 0


@dataclass(frozen=True)
class Done:
    phase: ClassVar[ResearchPhase] = ResearchPhase.DONE
    article_id: str
    result: ResearchResult


@dataclass(frozen=True)
class Failed:
    phase: ClassVar[ResearchPhase] = ResearchPhase.ERROR
    article_id: str
    message: str


ResearchState = Union[Idle, Scraping, FindingRelated, SearchingWeb, Generating, Done, Failed]


@dataclass(frozen=True)
class ChatReply:
    article_id: str
    thread: ChatThread
    reply_text: str | None = None
    error_message: str | None = None
    web_results: list[WebRef] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error_message is None
