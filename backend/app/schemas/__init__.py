"""Pydantic schemas package."""

from app.schemas.ai_model import CamelModel, AIModelRead
from app.schemas.recommendation import (
    RecommendationMeta,
    RecommendedModel,
    UserProfileSummary,
    RecommendationMetadata,
    RecommendationResponse,
)
from app.schemas.interaction import TrackInteractionRequest, TrackInteractionResponse
from app.schemas.behavior import (
    BehaviorProfileRead,
    EngagementTrendPoint,
    BehaviorPatterns,
    BehaviorAnalyticsResponse,
    CategoryAffinityRead,
    ProviderAffinityRead,
    RecentActivity,
    RecommendationInsightsResponse,
)

__all__ = [
    # Catalog
    "CamelModel",
    "AIModelRead",
    # Recommendations
    "RecommendationMeta",
    "RecommendedModel",
    "UserProfileSummary",
    "RecommendationMetadata",
    "RecommendationResponse",
    # Interactions
    "TrackInteractionRequest",
    "TrackInteractionResponse",
    # Behavior
    "BehaviorProfileRead",
    "EngagementTrendPoint",
    "BehaviorPatterns",
    "BehaviorAnalyticsResponse",
    "CategoryAffinityRead",
    "ProviderAffinityRead",
    "RecentActivity",
    "RecommendationInsightsResponse",
]
