"""Per-user behavior analytics and recommendation insights."""

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import get_db
from app.schemas.behavior import (
    BehaviorAnalyticsResponse,
    BehaviorPatterns,
    BehaviorProfileRead,
    RecommendationInsightsResponse,
)
from app.services.behavior_profile_service import (
    analyze_behavior_patterns,
    get_behavior_profile,
    get_recommendation_insights,
)

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/{user_id}/behavior-analytics", response_model=BehaviorAnalyticsResponse)
async def behavior_analytics(
    user_id: int = Path(..., gt=0),
    days: int = Query(30, ge=1, le=365, description="Analysis window in days"),
    db: AsyncSession = Depends(get_db),
):
    """Behavior profile plus pattern summary over the window."""
    profile = await get_behavior_profile(db, user_id)
    patterns = await analyze_behavior_patterns(db, user_id, days=days)
    return BehaviorAnalyticsResponse(
        profile=BehaviorProfileRead.model_validate(profile.to_dict()),
        patterns=BehaviorPatterns.model_validate(patterns.to_dict()),
    )


@router.get("/{user_id}/recommendation-insights", response_model=RecommendationInsightsResponse)
async def recommendation_insights(
    user_id: int = Path(..., gt=0),
    db: AsyncSession = Depends(get_db),
):
    """Top categories/providers, profile snapshot and recent activity."""
    insights = await get_recommendation_insights(db, user_id)
    return RecommendationInsightsResponse.model_validate(insights)
