from __future__ import annotations

import json as _json

from fastapi import APIRouter, Depends, HTTPException, Query
from sse_starlette.sse import EventSourceResponse

from newsdeck.agents.orchestrator import ResearchInputError, ResearchOrchestrator
from newsdeck.api.deps import get_orchestrator, get_working_set, require_article
from newsdeck.models.research import Done, Failed
from newsdeck.models.schemas import ContentResponse, SummaryResponse
from newsdeck.services import logger as log_service
from newsdeck.services import streaming
from newsdeck.services.working_set import WorkingSet

router = APIRouter(prefix="/api/research", tags=["research"])


@router.get("/stream")
async def stream_research(
    article_id: str = Query(...),
    force_full_scrape: bool = False,
    force_refresh: bool = False,
    orchestrator: ResearchOrchestrator = Depends(get_orchestrator),
    working_set: WorkingSet = Depends(get_working_set),
):
    """SSE endpoint that streams research phases for one article."""
    article = require_article(working_set, article_id)
    try:
        states = orchestrator.request_research(
            article,
            force_full_scrape=force_full_scrape,
            force_refresh=force_refresh,
        )
    except ResearchInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    async def event_generator():
        log_service.log_event(
            event_type="research_started",
            message="Research started",
            article_id=article_id,
            force_full_scrape=force_full_scrape,
        )
        finished = False
        try:
            async for state in states:
                finished = isinstance(state, (Done, Failed))
                event = streaming.state_event(state)
                yield {"event": event.event.value, "data": _json.dumps(event.data)}
            if not finished:
                event = streaming.research_superseded(article_id)
                yield {"event": event.event.value, "data": _json.dumps(event.data)}
        except Exception as e:
            log_service.log_event(
                event_type="stream_error",
                message="Unhandled error in research stream",
                error=str(e),
                article_id=article_id,
            )
            error_event = streaming.research_error(article_id, "Research stream failed unexpectedly.")
            yield {"event": error_event.event.value, "data": _json.dumps(error_event.data)}

    return EventSourceResponse(event_generator())


@router.get("/summary", response_model=SummaryResponse)
async def cached_summary(
    article_id: str = Query(...),
    orchestrator: ResearchOrchestrator = Depends(get_orchestrator),
):
    return SummaryResponse(article_id=article_id, summary=orchestrator.peek_cached_summary(article_id))


@router.post("/content", response_model=ContentResponse)
async def full_content(
    article_id: str = Query(...),
    orchestrator: ResearchOrchestrator = Depends(get_orchestrator),
    working_set: WorkingSet = Depends(get_working_set),
):
    """Fetch (or return the cached) full text of an article without summarizing it."""
    article = require_article(working_set, article_id)
    try:
        content = await orchestrator.fetch_full_content(article)
    except ResearchInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return ContentResponse(article_id=article_id, content=content)


@router.get("/content", response_model=ContentResponse)
async def cached_content(
    article_id: str = Query(...),
    orchestrator: ResearchOrchestrator = Depends(get_orchestrator),
    working_set: WorkingSet = Depends(get_working_set),
):
    article = require_article(working_set, article_id)
    content = orchestrator.peek_scraped_content(article.link) if article.link else None
    return ContentResponse(article_id=article_id, content=content)
