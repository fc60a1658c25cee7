"""Pydantic schemas for behavior analytics and recommendation insights."""

from datetime import datetime

from app.schemas.ai_model import CamelModel


class BehaviorProfileRead(CamelModel):
    user_id: int
    exploration_score: int
    quality_threshold: int
    total_interactions: int
    average_session_duration: int | None = None
    most_active_hour: int | None = None
    last_active_at: datetime | None = None
    is_cold_start: bool = False


class EngagementTrendPoint(CamelModel):
    date: str
    avg_engagement: float | None = None
    interactions: int = 0


class BehaviorPatterns(CamelModel):
    total_interactions: int
    category_breakdown: dict[str, int]
    provider_breakdown: dict[str, int]
    interaction_type_breakdown: dict[str, int]
    device_breakdown: dict[str, int]
    engagement_trends: list[EngagementTrendPoint]
    peak_usage_hours: list[int]
    preference_strength: float
    average_session_duration: float | None = None


class BehaviorAnalyticsResponse(CamelModel):
    profile: BehaviorProfileRead
    patterns: BehaviorPatterns


class CategoryAffinityRead(CamelModel):
    category: str
    score: float
    interaction_count: int


class ProviderAffinityRead(CamelModel):
    provider: str
    score: float
    interaction_count: int
    quality_rating: int | None = None


class RecentActivity(CamelModel):
    days: int
    interactions: int
    by_type: dict[str, int]
    last_active_at: datetime | None = None


class RecommendationInsightsResponse(CamelModel):
    user_id: int
    top_categories: list[CategoryAffinityRead]
    top_providers: list[ProviderAffinityRead]
    profile: BehaviorProfileRead
    recent_activity: RecentActivity
