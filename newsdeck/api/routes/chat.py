from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from newsdeck.agents.orchestrator import ResearchInputError, ResearchOrchestrator
from newsdeck.api.deps import get_orchestrator, get_working_set, require_article
from newsdeck.models.schemas import ChatReplyResponse, ChatRequest, ChatThreadResponse
from newsdeck.services.working_set import WorkingSet

router = APIRouter(prefix="/api/chat", tags=["chat"])


@router.get("", response_model=ChatThreadResponse)
async def get_thread(
    article_id: str = Query(...),
    orchestrator: ResearchOrchestrator = Depends(get_orchestrator),
):
    thread = orchestrator.peek_chat_thread(article_id)
    return ChatThreadResponse(
        article_id=article_id,
        phase=orchestrator.chat_phase(article_id).value,
        messages=list(thread.messages) if thread else [],
    )


@router.post("", response_model=ChatReplyResponse)
async def send_message(
    request: ChatRequest,
    orchestrator: ResearchOrchestrator = Depends(get_orchestrator),
    working_set: WorkingSet = Depends(get_working_set),
):
    article = require_article(working_set, request.article_id)
    try:
        reply = await orchestrator.send_chat_message(
            article,
            request.message,
            use_web_search=request.use_web_search,
        )
    except ResearchInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return ChatReplyResponse(
        article_id=reply.article_id,
        ok=reply.ok,
        reply=reply.reply_text,
        error=reply.error_message,
        web_results=reply.web_results,
        messages=list(reply.thread.messages),
    )


@router.delete("")
async def clear_thread(
    article_id: str = Query(...),
    orchestrator: ResearchOrchestrator = Depends(get_orchestrator),
):
    orchestrator.clear_chat(article_id)
    return {"status": "cleared", "article_id": article_id}
