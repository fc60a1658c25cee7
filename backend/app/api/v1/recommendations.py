"""Personalized recommendation endpoint."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.dependencies.cache import get_recommendation_cache
from app.models.base import get_db
from app.schemas.recommendation import RecommendationResponse
from app.services.recommendation_engine import SessionContext
from app.services.recommendation_service import (
    GetPersonalizedRecommendationsQuery,
    PersonalizedRecommendationsHandler,
)

router = APIRouter(prefix="/recommendations", tags=["recommendations"])


def _parse_id_list(raw: str | None, field: str) -> tuple[int, ...]:
    """Parse a comma-separated id list such as "3,7,12"."""
    if not raw:
        return ()
    ids = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            ids.append(int(part))
        except ValueError:
            raise HTTPException(status_code=400, detail=f"{field} must be a comma-separated list of integers")
    return tuple(ids)


@router.get("", response_model=RecommendationResponse)
async def get_recommendations(
    db: AsyncSession = Depends(get_db),
    cache=Depends(get_recommendation_cache),
    user_id: int = Query(..., alias="userId", gt=0),
    limit: int = Query(20, ge=1, le=100),
    exclude_ids: str | None = Query(None, alias="excludeIds", description="Comma-separated model ids to skip"),
    session_duration: int | None = Query(None, alias="sessionDuration", ge=0),
    current_category: str | None = Query(None, alias="currentCategory"),
    viewed_ids: str | None = Query(None, alias="viewedIds", description="Models viewed this session; excluded"),
):
    """Ranked "For You" models. Internal failures return featured models with HTTP 200."""
    viewed = _parse_id_list(viewed_ids, "viewedIds")
    query = GetPersonalizedRecommendationsQuery(
        user_id=user_id,
        max_results=limit,
        exclude_model_ids=_parse_id_list(exclude_ids, "excludeIds"),
        session_context=SessionContext(
            session_duration=session_duration or 0,
            current_category=current_category,
            models_viewed=list(viewed),
            exclude_viewed=bool(viewed),
        ),
    )
    handler = PersonalizedRecommendationsHandler(db, cache=cache)
    return await handler.handle(query)
