"""Personalized recommendations query handler.

Orchestrates the behavior profile, the recommendation engine and the response
cache. Recommendation failures never reach the caller: the handler falls back
to featured catalog models.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.models.base import utcnow
from app.schemas.ai_model import AIModelRead
from app.schemas.recommendation import (
    RecommendationMeta,
    RecommendationMetadata,
    RecommendationResponse,
    RecommendedModel,
    UserProfileSummary,
)
from app.services.cache import recommendations_key
from app.services.catalog_service import get_featured_models
from app.services.recommendation_engine import (
    Recommendation,
    RecommendationEngine,
    RecommendationFailure,
    RecommendationSuccess,
    SessionContext,
    diversity_score,
)

logger = logging.getLogger(__name__)

PERSONALIZED_ALGORITHMS = [
    "category_affinity",
    "provider_affinity",
    "popularity",
    "community_engagement",
    "session_context",
    "time_context",
    "exploration",
]
FALLBACK_TOP_CATEGORIES = ["General", "Photorealistic"]


@dataclass(frozen=True)
class GetPersonalizedRecommendationsQuery:
    user_id: int
    max_results: int = 20
    exclude_model_ids: tuple[int, ...] = ()
    session_context: SessionContext = field(default_factory=SessionContext)
    requested_at: datetime = field(default_factory=utcnow)

    def cache_key(self) -> str:
        viewed = self.session_context.models_viewed if self.session_context.exclude_viewed else ()
        return recommendations_key(
            self.user_id,
            self.max_results,
            self.exclude_model_ids,
            self.session_context.current_category,
            viewed,
        )


def _to_recommended(rec: Recommendation) -> RecommendedModel:
    return RecommendedModel(
        **AIModelRead.model_validate(rec.model).model_dump(),
        recommendation=RecommendationMeta(
            relevance_score=rec.relevance_score,
            confidence_score=rec.confidence_score,
            reasons=rec.reasons,
            diversity_factor=rec.diversity_factor,
        ),
    )


class PersonalizedRecommendationsHandler:
    """Entry point for "For You" requests."""

    def __init__(self, db: AsyncSession, engine: RecommendationEngine | None = None, cache=None):
        self.db = db
        self.engine = engine or RecommendationEngine()
        self.cache = cache

    async def handle(self, query: GetPersonalizedRecommendationsQuery) -> RecommendationResponse:
        started = time.perf_counter()

        cached = await self._from_cache(query)
        if cached is not None:
            return cached

        try:
            result = await self.engine.recommend(
                self.db,
                query.user_id,
                query.max_results,
                query.exclude_model_ids,
                query.session_context,
            )
        except Exception:
            logger.exception("Recommendation engine raised for user %s", query.user_id)
            return await self._fallback(query, started)

        if isinstance(result, RecommendationFailure):
            logger.warning("Falling back to featured models for user %s: %s", query.user_id, result.error)
            return await self._fallback(query, started)

        try:
            response = self._build_response(result, started)
            await self._store(query, response)
        except Exception:
            # Catalog rows are external data and may not fit the response schema
            logger.exception("Failed to package recommendations for user %s", query.user_id)
            return await self._fallback(query, started)
        return response

    def _build_response(self, result: RecommendationSuccess, started: float) -> RecommendationResponse:
        recommendations = result.recommendations
        average_confidence = (
            sum(r.confidence_score for r in recommendations) / len(recommendations)
            if recommendations else 0.0
        )
        profile = result.profile

        return RecommendationResponse(
            recommendations=[_to_recommended(r) for r in recommendations],
            total_candidates=result.total_candidates,
            processing_time_ms=int((time.perf_counter() - started) * 1000),
            user_profile=UserProfileSummary(
                exploration_score=profile.exploration_score,
                quality_threshold=profile.quality_threshold,
                total_interactions=profile.total_interactions,
                top_categories=result.signals.top_categories(),
                is_cold_start=profile.is_cold_start,
            ),
            metadata=RecommendationMetadata(
                algorithms=PERSONALIZED_ALGORITHMS,
                diversity_score=diversity_score(recommendations),
                average_confidence=round(average_confidence, 4),
                fallback=False,
            ),
        )

    async def _fallback(self, query: GetPersonalizedRecommendationsQuery, started: float) -> RecommendationResponse:
        """Featured models with fixed scores, independent of personalization."""
        settings = get_settings()
        # The failed computation may have left the transaction unusable
        await self.db.rollback()

        excluded = set(query.exclude_model_ids)
        try:
            models = await get_featured_models(self.db, query.max_results + len(excluded))
        except Exception:
            logger.exception("Featured fallback failed for user %s", query.user_id)
            models = []
        packaged = []
        for m in models:
            if m.id in excluded:
                continue
            try:
                packaged.append(_to_recommended(Recommendation(
                    model=m,
                    relevance_score=0.6,
                    confidence_score=0.5,
                    reasons=["Featured model trending in the community"],
                    diversity_factor=0.8,
                )))
            except ValueError:
                logger.warning("Skipping catalog model %s that does not fit the response schema", m.id)
                continue
            if len(packaged) >= query.max_results:
                break

        return RecommendationResponse(
            recommendations=packaged,
            total_candidates=len(packaged),
            processing_time_ms=int((time.perf_counter() - started) * 1000),
            user_profile=UserProfileSummary(
                exploration_score=settings.default_exploration_score,
                quality_threshold=settings.default_quality_threshold,
                top_categories=FALLBACK_TOP_CATEGORIES,
                is_cold_start=True,
            ),
            metadata=RecommendationMetadata(
                algorithms=["fallback"],
                diversity_score=0.8,
                average_confidence=0.5,
                fallback=True,
            ),
        )

    async def _from_cache(self, query: GetPersonalizedRecommendationsQuery) -> RecommendationResponse | None:
        if self.cache is None:
            return None
        payload = await self.cache.get(query.cache_key())
        if payload is None:
            return None
        try:
            response = RecommendationResponse.model_validate(payload)
        except ValueError:
            logger.warning("Discarding malformed cached recommendations for user %s", query.user_id)
            await self.cache.delete(query.cache_key())
            return None
        response.metadata.cached = True
        return response

    async def _store(self, query: GetPersonalizedRecommendationsQuery, response: RecommendationResponse) -> None:
        if self.cache is None or get_settings().recommendation_cache_ttl <= 0:
            return
        await self.cache.set(query.cache_key(), response.model_dump(mode="json", by_alias=True))
