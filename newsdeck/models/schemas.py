from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from newsdeck.models.article import Article
from newsdeck.models.cache import ArticleSummary, ChatMessage, ScrapedContent, WebRef
from newsdeck.services.ingestion import AgeFilter


# --- Requests ---


class GroupRefreshRequest(BaseModel):
    feed_urls: list[str] = Field(default_factory=list)


class ChatRequest(BaseModel):
    article_id: str
    message: str
    use_web_search: bool = False


class TranslateRequest(BaseModel):
    text: str
    target_language: str | None = None


class SentimentRequest(BaseModel):
    headline: str


class ArticleTaskRequest(BaseModel):
    article_id: str


# --- Responses ---


class ArticleResponse(BaseModel):
    id: str
    title: str
    link: str
    published_at: datetime | None
    snippet: str
    source_name: str
    author: str

    @classmethod
    def from_article(cls, article: Article) -> "ArticleResponse":
        return cls(
            id=article.id,
            title=article.title,
            link=article.link,
            published_at=article.published_at,
            snippet=article.snippet,
            source_name=article.source_name,
            author=article.author,
        )


class GroupResponse(BaseModel):
    key: str
    age: AgeFilter = AgeFilter.ALL
    articles: list[ArticleResponse]


class SummaryResponse(BaseModel):
    article_id: str
    summary: ArticleSummary | None


class ContentResponse(BaseModel):
    article_id: str
    content: ScrapedContent | None


class ChatThreadResponse(BaseModel):
    article_id: str
    phase: str
    messages: list[ChatMessage]


class ChatReplyResponse(BaseModel):
    article_id: str
    ok: bool
    reply: str | None
    error: str | None
    web_results: list[WebRef]
    messages: list[ChatMessage]


class TextResponse(BaseModel):
    text: str | None
