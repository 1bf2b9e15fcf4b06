from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from newsdeck.api.deps import get_cache, get_text_tasks, get_working_set, require_article
from newsdeck.llm_client import GenerationError
from newsdeck.models.schemas import (
    ArticleTaskRequest,
    SentimentRequest,
    TextResponse,
    TranslateRequest,
)
from newsdeck.services.article_cache import ArticleCache
from newsdeck.services.text_tasks import TextTasks
from newsdeck.services.working_set import WorkingSet

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


def _generation_failed(exc: GenerationError) -> HTTPException:
    return HTTPException(status_code=502, detail=f"Generation failed: {exc}")


@router.post("/summary", response_model=TextResponse)
async def quick_summary(
    request: ArticleTaskRequest,
    tasks: TextTasks = Depends(get_text_tasks),
    working_set: WorkingSet = Depends(get_working_set),
    cache: ArticleCache = Depends(get_cache),
):
    article = require_article(working_set, request.article_id)
    scraped = cache.get_scraped(article.link) if article.link else None
    try:
        text = await tasks.summarize_brief(article, scraped.plain_text if scraped else None)
    except GenerationError as exc:
        raise _generation_failed(exc) from exc
    return TextResponse(text=text)


@router.post("/translate", response_model=TextResponse)
async def translate(request: TranslateRequest, tasks: TextTasks = Depends(get_text_tasks)):
    try:
        text = await tasks.translate(request.text, request.target_language)
    except GenerationError as exc:
        raise _generation_failed(exc) from exc
    return TextResponse(text=text)


@router.post("/sentiment")
async def sentiment(request: SentimentRequest, tasks: TextTasks = Depends(get_text_tasks)):
    try:
        label = await tasks.classify_sentiment(request.headline)
    except GenerationError as exc:
        raise _generation_failed(exc) from exc
    return {"headline": request.headline, "sentiment": label.value}


@router.post("/briefing", response_model=TextResponse)
async def briefing(
    tasks: TextTasks = Depends(get_text_tasks),
    working_set: WorkingSet = Depends(get_working_set),
):
    try:
        text = await tasks.generate_briefing(working_set.groups())
    except GenerationError as exc:
        raise _generation_failed(exc) from exc
    return TextResponse(text=text)
