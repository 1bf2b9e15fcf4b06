from __future__ import annotations

from functools import lru_cache

from fastapi import HTTPException

from newsdeck.agents.orchestrator import ResearchOrchestrator
from newsdeck.models.article import Article
from newsdeck.services.article_cache import ArticleCache, cache_from_settings
from newsdeck.services.text_tasks import TextTasks
from newsdeck.services.working_set import WorkingSet


@lru_cache
def get_cache() -> ArticleCache:
    return cache_from_settings()


@lru_cache
def get_working_set() -> WorkingSet:
    return WorkingSet()


@lru_cache
def get_orchestrator() -> ResearchOrchestrator:
    return ResearchOrchestrator(get_cache(), get_working_set())


@lru_cache
def get_text_tasks() -> TextTasks:
    return TextTasks()


def require_article(working_set: WorkingSet, article_id: str) -> Article:
    article = working_set.find(article_id)
    if article is None:
        raise HTTPException(status_code=404, detail="Article not found in any loaded grouping")
    return article
