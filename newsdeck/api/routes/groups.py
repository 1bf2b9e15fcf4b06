from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from newsdeck.api.deps import get_working_set
from newsdeck.models.schemas import ArticleResponse, GroupRefreshRequest, GroupResponse
from newsdeck.services.ingestion import AgeFilter, filter_by_age, refresh_group
from newsdeck.services.working_set import WorkingSet

router = APIRouter(prefix="/api/groups", tags=["groups"])


@router.get("")
async def list_groups(working_set: WorkingSet = Depends(get_working_set)):
    return {
        "groups": [
            {"key": key, "count": len(articles)}
            for key, articles in working_set.groups().items()
        ]
    }


@router.post("/{key}/refresh", response_model=GroupResponse)
async def refresh(
    key: str,
    request: GroupRefreshRequest,
    working_set: WorkingSet = Depends(get_working_set),
):
    """Fetch every source of the grouping and replace its articles."""
    if not request.feed_urls:
        raise HTTPException(status_code=400, detail="At least one feed URL is required")
    articles = await refresh_group(working_set, key, request.feed_urls)
    return GroupResponse(key=key, articles=[ArticleResponse.from_article(a) for a in articles])


@router.get("/{key}", response_model=GroupResponse)
async def get_group(
    key: str,
    age: AgeFilter = AgeFilter.ALL,
    working_set: WorkingSet = Depends(get_working_set),
):
    if key not in working_set.groups():
        raise HTTPException(status_code=404, detail="Grouping not loaded")
    articles = filter_by_age(working_set.articles(key), age)
    return GroupResponse(key=key, age=age, articles=[ArticleResponse.from_article(a) for a in articles])
