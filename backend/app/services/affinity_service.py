"""Affinity service: nudges per-user category and provider scores from interaction signals."""

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.exceptions import PersistenceError
from app.models.ai_model import AIModel
from app.models.base import utcnow
from app.models.user_affinity import UserCategoryAffinity, UserProviderAffinity
from app.models.user_behavior_profile import UserBehaviorProfile
from app.models.user_interaction import InteractionType, UserModelInteraction

logger = logging.getLogger(__name__)


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def calculate_affinity_boost(
    interaction_type: InteractionType | str,
    engagement_level: int,
    settings: Settings | None = None,
) -> float:
    """boost = min(1.0, base_boost(type) * engagement/10 * multiplier)."""
    settings = settings or get_settings()
    kind = InteractionType(interaction_type)
    base = settings.affinity_base_boosts.get(kind.value, 0.0)
    return min(1.0, base * (engagement_level / 10) * settings.affinity_engagement_multiplier)


def affinity_decay_factor(interaction_count: int, settings: Settings | None = None) -> float:
    """Shrink increments as a row accumulates interactions."""
    settings = settings or get_settings()
    return 1.0 / (1.0 + settings.affinity_decay_rate * max(0, interaction_count))


def next_affinity_score(
    current: float,
    boost: float,
    interaction_count: int,
    settings: Settings | None = None,
) -> float:
    """Score after one more interaction, saturating at 1.0."""
    return _clamp(current + boost * affinity_decay_factor(interaction_count, settings))


def provider_rating_multiplier(rating: int | None) -> float:
    """Secondary multiplier for provider boosts; 0.51-1.5 across ratings 1-100."""
    if rating is None:
        return 1.0
    return 0.5 + max(1, min(100, rating)) / 100


def decay_affinity_score(score: float, days: float = 1.0, half_life: float = 30.0) -> float:
    """Exponential time decay toward 0.

    Formula: score = score * 0.5^(days/half_life)
    """
    return _clamp(score * 0.5 ** (days / half_life))


async def update_category_affinity(
    db: AsyncSession,
    user_id: int,
    category: str,
    boost: float,
    settings: Settings | None = None,
) -> UserCategoryAffinity:
    """Read-modify-write the (user, category) row. Not idempotent."""
    try:
        result = await db.execute(
            select(UserCategoryAffinity).where(
                UserCategoryAffinity.user_id == user_id,
                UserCategoryAffinity.category == category,
            )
        )
        affinity = result.scalar_one_or_none()

        if affinity is None:
            affinity = UserCategoryAffinity(
                user_id=user_id,
                category=category,
                affinity_score=_clamp(boost),
                interaction_count=1,
            )
            db.add(affinity)
        else:
            affinity.affinity_score = next_affinity_score(affinity.affinity_score, boost, affinity.interaction_count, settings)
            affinity.interaction_count += 1
            affinity.last_interaction_at = utcnow()

        await db.flush()
    except SQLAlchemyError as e:
        raise PersistenceError(f"Failed to update category affinity for user {user_id}: {e}") from e

    return affinity


async def update_provider_affinity(
    db: AsyncSession,
    user_id: int,
    provider: str,
    boost: float,
    rating: int | None = None,
    settings: Settings | None = None,
) -> UserProviderAffinity:
    """Like update_category_affinity, with the model rating folded into the boost."""
    weighted = boost * provider_rating_multiplier(rating)
    try:
        result = await db.execute(
            select(UserProviderAffinity).where(
                UserProviderAffinity.user_id == user_id,
                UserProviderAffinity.provider == provider,
            )
        )
        affinity = result.scalar_one_or_none()

        if affinity is None:
            affinity = UserProviderAffinity(
                user_id=user_id,
                provider=provider,
                affinity_score=_clamp(weighted),
                interaction_count=1,
                quality_rating=rating if rating is not None else 70,
            )
            db.add(affinity)
        else:
            affinity.affinity_score = next_affinity_score(affinity.affinity_score, weighted, affinity.interaction_count, settings)
            affinity.interaction_count += 1
            if rating is not None:
                affinity.quality_rating = rating
            affinity.last_interaction_at = utcnow()

        await db.flush()
    except SQLAlchemyError as e:
        raise PersistenceError(f"Failed to update provider affinity for user {user_id}: {e}") from e

    return affinity


async def _touch_behavior_profile(db: AsyncSession, interaction: UserModelInteraction) -> None:
    """Incremental profile counters; full recompute happens in refresh_behavior_profile."""
    settings = get_settings()
    result = await db.execute(
        select(UserBehaviorProfile).where(UserBehaviorProfile.user_id == interaction.user_id)
    )
    profile = result.scalar_one_or_none()
    if profile is None:
        profile = UserBehaviorProfile(
            user_id=interaction.user_id,
            exploration_score=settings.default_exploration_score,
            quality_threshold=settings.default_quality_threshold,
            total_interactions=0,
        )
        db.add(profile)

    profile.total_interactions = (profile.total_interactions or 0) + 1
    profile.last_active_at = utcnow()
    await db.flush()


async def apply_interaction_signal(
    db: AsyncSession,
    interaction: UserModelInteraction,
    model: AIModel,
    settings: Settings | None = None,
) -> float:
    """Apply one recorded interaction to the user's affinities and profile counters.

    Returns the boost that was applied.
    """
    boost = calculate_affinity_boost(interaction.interaction_type, interaction.engagement_level, settings)

    await update_category_affinity(db, interaction.user_id, model.category, boost, settings)
    await update_provider_affinity(db, interaction.user_id, model.provider, boost, model.rating, settings)
    try:
        await _touch_behavior_profile(db, interaction)
    except SQLAlchemyError as e:
        raise PersistenceError(f"Failed to update behavior profile for user {interaction.user_id}: {e}") from e

    logger.info(
        "Applied %s signal for user %s (category=%s, provider=%s, boost=%.3f)",
        interaction.interaction_type, interaction.user_id, model.category, model.provider, boost,
    )
    return boost


async def get_category_affinities(db: AsyncSession, user_id: int, limit: int | None = None) -> list[UserCategoryAffinity]:
    query = (
        select(UserCategoryAffinity)
        .where(UserCategoryAffinity.user_id == user_id)
        .order_by(UserCategoryAffinity.affinity_score.desc(), UserCategoryAffinity.category)
    )
    if limit:
        query = query.limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_provider_affinities(db: AsyncSession, user_id: int, limit: int | None = None) -> list[UserProviderAffinity]:
    query = (
        select(UserProviderAffinity)
        .where(UserProviderAffinity.user_id == user_id)
        .order_by(UserProviderAffinity.affinity_score.desc(), UserProviderAffinity.provider)
    )
    if limit:
        query = query.limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())
