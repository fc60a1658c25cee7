"""Recommendation engine: blends affinity, popularity and session signals into a ranked, diversified list.

relevance = category_weight * category_affinity
          + provider_weight * provider_affinity
          + popularity_weight * popularity
          + session boost (candidate category == current browsing category)
          + exploration bonus (scaled by exploration score, larger for unfamiliar categories)
          + community_weight * community
          + time boost (request hour within the window of the user's most active hour)
then multiplied by quality_penalty when the model rating is under the user's quality threshold.

popularity = 0.4 * featured + 0.3 * rating/100 + 0.3 * log1p(downloads)/log1p(max downloads in pool)
community = mean of likes, discussions and images generated, each scaled to 0-1
"""

import logging
import math
from dataclasses import dataclass, field, replace
from datetime import timezone
from typing import Iterable, Union

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.exceptions import RecommendationComputationError
from app.models.ai_model import AIModel
from app.models.base import utcnow
from app.services.affinity_service import get_category_affinities, get_provider_affinities
from app.services.behavior_profile_service import BehaviorProfileSnapshot, get_behavior_profile
from app.services.catalog_service import get_candidate_models

logger = logging.getLogger(__name__)

MIN_REASON_CONTRIBUTION = 0.03


@dataclass
class SessionContext:
    session_duration: int = 0
    current_category: str | None = None
    models_viewed: list[int] = field(default_factory=list)
    exclude_viewed: bool = False
    current_hour: int | None = None  # 0-23 UTC; filled in by recommend()


@dataclass
class AffinitySignals:
    category_scores: dict[str, float] = field(default_factory=dict)
    category_counts: dict[str, int] = field(default_factory=dict)
    provider_scores: dict[str, float] = field(default_factory=dict)
    provider_counts: dict[str, int] = field(default_factory=dict)

    def top_categories(self, n: int = 3) -> list[str]:
        ranked = sorted(self.category_scores.items(), key=lambda kv: (-kv[1], kv[0]))
        return [category for category, _ in ranked[:n]]


@dataclass
class Recommendation:
    model: AIModel
    relevance_score: float
    confidence_score: float
    reasons: list[str]
    diversity_factor: float


@dataclass
class RecommendationSuccess:
    recommendations: list[Recommendation]
    total_candidates: int
    profile: BehaviorProfileSnapshot
    signals: AffinitySignals


@dataclass
class RecommendationFailure:
    error: RecommendationComputationError


RecommendationResult = Union[RecommendationSuccess, RecommendationFailure]


def _created_key(model) -> float:
    created = getattr(model, "created_at", None)
    if created is None:
        return 0.0
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created.timestamp()


def diversity_score(recommendations: list[Recommendation]) -> float:
    """Mean of distinct-category and distinct-provider ratios across a list."""
    if len(recommendations) < 2:
        return 1.0
    categories = {r.model.category for r in recommendations}
    providers = {r.model.provider for r in recommendations}
    n = len(recommendations)
    return round((len(categories) / n + len(providers) / n) / 2, 4)


class RecommendationEngine:
    """Scores candidate models for one user. `rank` is pure; `recommend` loads inputs from the database."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    # --- Scoring ---

    def popularity(self, model, max_downloads: int) -> float:
        featured = 1.0 if model.featured else 0.0
        rating = max(0, min(100, model.rating or 0)) / 100
        downloads = model.downloads or 0
        if max_downloads > 0:
            download_score = math.log1p(downloads) / math.log1p(max_downloads)
        else:
            download_score = 0.0
        return 0.4 * featured + 0.3 * rating + 0.3 * download_score

    def community(self, model) -> float:
        s = self.settings
        likes = min(1.0, (model.likes or 0) / s.community_likes_scale)
        discussions = min(1.0, (model.discussions or 0) / s.community_discussions_scale)
        images = min(1.0, (model.images_generated or 0) / s.community_images_scale)
        return (likes + discussions + images) / 3

    def time_boost(self, profile: BehaviorProfileSnapshot, context: SessionContext) -> float:
        """Flat boost when the request hour is close to the user's most active hour."""
        if profile.most_active_hour is None or context.current_hour is None:
            return 0.0
        distance = abs(context.current_hour - profile.most_active_hour) % 24
        distance = min(distance, 24 - distance)
        if distance <= self.settings.time_context_window_hours:
            return self.settings.time_context_boost
        return 0.0

    def confidence(self, evidence: float) -> float:
        """Rises from the floor toward the ceiling as behavioral evidence accumulates."""
        s = self.settings
        spread = s.confidence_ceiling - s.confidence_floor
        return round(s.confidence_floor + spread * (1 - math.exp(-max(0.0, evidence) / s.confidence_evidence_scale)), 4)

    def score(
        self,
        model,
        signals: AffinitySignals,
        profile: BehaviorProfileSnapshot,
        context: SessionContext,
        max_downloads: int,
    ) -> tuple[float, float, list[tuple[float, str]]]:
        """Return (relevance, confidence, [(contribution, reason), ...]) for one candidate."""
        s = self.settings
        contributions: list[tuple[float, str]] = []

        category_affinity = signals.category_scores.get(model.category, 0.0)
        provider_affinity = signals.provider_scores.get(model.provider, 0.0)

        category_part = s.category_weight * category_affinity
        provider_part = s.provider_weight * provider_affinity
        popularity_part = s.popularity_weight * self.popularity(model, max_downloads)
        contributions.append((category_part, f"Because you liked models in {model.category}"))
        contributions.append((provider_part, f"From {model.provider}, which you've enjoyed before"))
        if model.featured:
            contributions.append((popularity_part, "Featured model trending in the community"))
        else:
            contributions.append((popularity_part, "Popular with the community"))

        session_part = 0.0
        if context.current_category and context.current_category == model.category:
            session_part = s.session_category_boost
            contributions.append((session_part, f"Continues your current browsing in {model.category}"))

        exploration_part = (profile.exploration_score / 100) * s.exploration_bonus * (1 - category_affinity)
        if category_affinity < 0.3:
            contributions.append((exploration_part, f"Discover something new in {model.category}"))

        community_part = s.community_weight * self.community(model)
        contributions.append((community_part, "Popular among active community members"))

        time_part = self.time_boost(profile, context)
        if time_part:
            contributions.append((time_part, "Perfect timing for your typical usage pattern"))

        rating = model.rating or 0
        if rating >= profile.quality_threshold:
            contributions.append(((rating - profile.quality_threshold) / 100 * 0.1 + 0.01, "Quality matches your preferences"))

        raw = category_part + provider_part + popularity_part + session_part + exploration_part + community_part + time_part
        if rating < profile.quality_threshold:
            raw *= s.quality_penalty
        relevance = round(max(0.0, min(1.0, raw)), 4)

        evidence = (
            profile.total_interactions
            + signals.category_counts.get(model.category, 0)
            + signals.provider_counts.get(model.provider, 0)
        )
        return relevance, self.confidence(evidence), contributions

    def _reasons(self, contributions: list[tuple[float, str]]) -> list[str]:
        ordered = sorted(
            (c for c in contributions if c[0] >= MIN_REASON_CONTRIBUTION),
            key=lambda c: -c[0],
        )
        reasons = [text for _, text in ordered[: self.settings.max_reasons]]
        if not reasons:
            # Always explain at least the strongest signal
            reasons = [max(contributions, key=lambda c: c[0])[1]]
        return reasons

    # --- Ranking ---

    def _extends_run(self, selected: list[Recommendation], candidate: Recommendation) -> bool:
        run = self.settings.max_run_length
        if run <= 0 or len(selected) < run:
            return False
        tail = selected[-run:]
        same_category = all(r.model.category == candidate.model.category for r in tail)
        same_provider = all(r.model.provider == candidate.model.provider for r in tail)
        return same_category or same_provider

    def diversify(self, ranked: list[Recommendation], limit: int) -> list[Recommendation]:
        """Greedy re-order so no more than max_run_length consecutive items share a category or provider.

        When every remaining candidate would extend a run, the best-ranked one is taken anyway.
        """
        selected: list[Recommendation] = []
        remaining = list(ranked)
        while remaining and len(selected) < limit:
            pick = next(
                (i for i, rec in enumerate(remaining) if not self._extends_run(selected, rec)),
                0,
            )
            selected.append(remaining.pop(pick))
        return selected

    def rank(
        self,
        candidates: Iterable,
        signals: AffinitySignals,
        profile: BehaviorProfileSnapshot,
        context: SessionContext | None = None,
        limit: int = 20,
        exclude_ids: Iterable[int] = (),
    ) -> list[Recommendation]:
        """Score, sort and diversify candidates.

        Sort order is relevance, then confidence, then newer model, then lower id.
        The diversity pass runs afterwards and takes priority: an item that would
        extend a category or provider run is deferred even when it ties on
        relevance with a lower-confidence item.
        """
        context = context or SessionContext()
        excluded = set(exclude_ids)
        if context.exclude_viewed:
            excluded.update(context.models_viewed)

        pool = [m for m in candidates if m.id not in excluded]
        if not pool or limit <= 0:
            return []

        max_downloads = max((m.downloads or 0) for m in pool)
        category_share: dict[str, int] = {}
        for m in pool:
            category_share[m.category] = category_share.get(m.category, 0) + 1

        scored = []
        for model in pool:
            relevance, confidence, contributions = self.score(model, signals, profile, context, max_downloads)
            scored.append(Recommendation(
                model=model,
                relevance_score=relevance,
                confidence_score=confidence,
                reasons=self._reasons(contributions),
                diversity_factor=round(max(0.1, 1 - category_share[model.category] / len(pool)), 4),
            ))

        # Ties: higher confidence, then newer model, then lower id
        scored.sort(key=lambda r: (-r.relevance_score, -r.confidence_score, -_created_key(r.model), r.model.id))
        return self.diversify(scored, limit)

    # --- Database entry point ---

    async def load_signals(self, db: AsyncSession, user_id: int) -> AffinitySignals:
        categories = await get_category_affinities(db, user_id)
        providers = await get_provider_affinities(db, user_id)
        return AffinitySignals(
            category_scores={a.category: a.affinity_score for a in categories},
            category_counts={a.category: a.interaction_count for a in categories},
            provider_scores={a.provider: a.affinity_score for a in providers},
            provider_counts={a.provider: a.interaction_count for a in providers},
        )

    async def recommend(
        self,
        db: AsyncSession,
        user_id: int,
        limit: int,
        exclude_ids: Iterable[int] = (),
        session_context: SessionContext | None = None,
    ) -> RecommendationResult:
        """Rank catalog models for a user. Failures come back as RecommendationFailure, never raised."""
        context = session_context or SessionContext()
        if context.current_hour is None:
            context = replace(context, current_hour=utcnow().hour)
        excluded = set(exclude_ids)
        if context.exclude_viewed:
            excluded.update(context.models_viewed)

        try:
            profile = await get_behavior_profile(db, user_id)
            signals = await self.load_signals(db, user_id)
            candidates = await get_candidate_models(db, excluded, self.settings.candidate_pool_size)
            recommendations = self.rank(candidates, signals, profile, context, limit, excluded)
        except Exception as e:
            logger.exception("Recommendation computation failed for user %s", user_id)
            return RecommendationFailure(RecommendationComputationError(str(e)))

        return RecommendationSuccess(
            recommendations=recommendations,
            total_candidates=len(candidates),
            profile=profile,
            signals=signals,
        )
