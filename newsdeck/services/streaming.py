from __future__ import annotations

from typing import Any

from newsdeck.models.events import EventType, SSEEvent
from newsdeck.models.research import (
    Done,
    Failed,
    Generating,
    ResearchResult,
    ResearchState,
    Scraping,
    SearchingWeb,
)

PHASE_MESSAGES = {
    "scraping": "Fetching full article...",
    "finding-related": "Finding related articles in your feeds...",
    "searching-web": "Searching the web for more sources...",
    "generating": "Generating summary...",
}


def result_payload(result: ResearchResult) -> dict[str, Any]:
    return {
        "article_id": result.article_id,
        "summary": result.summary_text,
        "related": [ref.model_dump() for ref in result.related],
        "web_results": [ref.model_dump() for ref in result.web_results],
        "from_cache": result.from_cache,
    }


def research_complete(result: ResearchResult) -> SSEEvent:
    return SSEEvent(event=EventType.RESEARCH_COMPLETE, data=result_payload(result))


def research_error(article_id: str, message: str) -> SSEEvent:
    return SSEEvent(event=EventType.ERROR, data={"article_id": article_id, "message": message})


def research_superseded(article_id: str) -> SSEEvent:
    """Closing event for a stream whose article lost focus before finishing."""
    return SSEEvent(
        event=EventType.SUPERSEDED,
        data={"article_id": article_id, "message": "Research was superseded by another request."},
    )


def phase_changed(state: ResearchState, **kwargs: Any) -> SSEEvent:
    phase = state.phase.value
    return SSEEvent(
        event=EventType.PHASE,
        data={
            "article_id": state.article_id,
            "phase": phase,
            "message": PHASE_MESSAGES.get(phase, ""),
            **kwargs,
        },
    )


def state_event(state: ResearchState) -> SSEEvent:
    """Map one pipeline state onto the event the presentation layer consumes."""
    if isinstance(state, Done):
        return research_complete(state.result)
    if isinstance(state, Failed):
        return research_error(state.article_id, state.message)
    if isinstance(state, Scraping):
        return phase_changed(state, url=state.url)
    if isinstance(state, SearchingWeb):
        return phase_changed(state, query=state.query, related_count=state.related_count)
    if isinstance(state, Generating):
        return phase_changed(state, related_count=state.related_count, web_count=state.web_count)
    return phase_changed(state)
