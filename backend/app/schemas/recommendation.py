"""Pydantic schemas for personalized recommendation responses."""

from pydantic import Field

from app.schemas.ai_model import AIModelRead, CamelModel


class RecommendationMeta(CamelModel):
    """Per-model scoring metadata."""

    relevance_score: float
    confidence_score: float
    reasons: list[str]
    diversity_factor: float


class RecommendedModel(AIModelRead):
    """Full model object plus its `_recommendation` block."""

    recommendation: RecommendationMeta = Field(alias="_recommendation")


class UserProfileSummary(CamelModel):
    exploration_score: int
    quality_threshold: int
    total_interactions: int = 0
    top_categories: list[str] = []
    is_cold_start: bool = False


class RecommendationMetadata(CamelModel):
    algorithms: list[str]
    diversity_score: float
    average_confidence: float
    fallback: bool = False
    cached: bool = False


class RecommendationResponse(CamelModel):
    recommendations: list[RecommendedModel]
    total_candidates: int
    processing_time_ms: int
    user_profile: UserProfileSummary
    metadata: RecommendationMetadata
