"""Behavior profile service: derives exploration and quality signals from the interaction log.

The pure helpers (summarize_interactions, apply_profile_stats, analyze_records)
take plain InteractionRecord lists so the async API path and the sync Celery
tasks share one implementation.
"""

import logging
import math
from collections import Counter
from dataclasses import dataclass, field, asdict
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.models.ai_model import AIModel
from app.models.base import utcnow
from app.models.user_behavior_profile import UserBehaviorProfile
from app.models.user_interaction import POSITIVE_INTERACTIONS, InteractionType, UserModelInteraction
from app.services.affinity_service import get_category_affinities, get_provider_affinities

logger = logging.getLogger(__name__)

POSITIVE_ENGAGEMENT_LEVEL = 7
TREND_DAYS = 7


@dataclass
class InteractionRecord:
    """An interaction joined with the catalog fields of its model."""

    interaction_type: str
    engagement_level: int
    created_at: datetime
    category: str | None = None
    provider: str | None = None
    rating: int | None = None
    session_duration: int | None = None
    device_type: str | None = None


@dataclass
class ProfileStats:
    exploration_score: int
    quality_threshold: int
    total_interactions: int
    average_session_duration: int | None
    most_active_hour: int | None
    last_active_at: datetime | None


@dataclass
class BehaviorProfileSnapshot:
    user_id: int
    exploration_score: int
    quality_threshold: int
    total_interactions: int
    average_session_duration: int | None = None
    most_active_hour: int | None = None
    last_active_at: datetime | None = None
    is_cold_start: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class BehaviorAnalytics:
    total_interactions: int = 0
    category_breakdown: dict[str, int] = field(default_factory=dict)
    provider_breakdown: dict[str, int] = field(default_factory=dict)
    interaction_type_breakdown: dict[str, int] = field(default_factory=dict)
    device_breakdown: dict[str, int] = field(default_factory=dict)
    engagement_trends: list[dict] = field(default_factory=list)
    peak_usage_hours: list[int] = field(default_factory=list)
    preference_strength: float = 0.3
    average_session_duration: float | None = None

    def to_dict(self) -> dict:
        return asdict(self)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _normalized_entropy(counts: Counter) -> float:
    """Shannon entropy of a count distribution scaled to 0-1."""
    values = [c for c in counts.values() if c > 0]
    if len(values) <= 1:
        return 0.0
    total = sum(values)
    entropy = -sum((c / total) * math.log(c / total) for c in values)
    return entropy / math.log(len(values))


def _breadth(counts: Counter) -> float:
    """Spread across distinct values: entropy damped by how many values were touched."""
    distinct = len([c for c in counts.values() if c > 0])
    if distinct <= 1:
        return 0.0
    coverage = 1 - 1 / distinct
    return _normalized_entropy(counts) * coverage


def evidence_weight(count: int, pivot: int) -> float:
    """Weight given to observed behavior over defaults; 0.5 at `pivot` interactions."""
    if count <= 0:
        return 0.0
    return count / (count + pivot)


def percentile(values: list[float], pct: float) -> float:
    """Linear-interpolated percentile of a non-empty list."""
    ordered = sorted(values)
    if len(ordered) == 1:
        return float(ordered[0])
    rank = (len(ordered) - 1) * pct / 100
    lower = math.floor(rank)
    upper = math.ceil(rank)
    if lower == upper:
        return float(ordered[lower])
    return ordered[lower] + (ordered[upper] - ordered[lower]) * (rank - lower)


def compute_exploration_score(
    category_counts: Counter,
    provider_counts: Counter,
    total: int,
    settings: Settings | None = None,
) -> int:
    """Rises with breadth across categories/providers, falls with concentration.

    Observed breadth maps to 20-95 and is blended with the cold-start default
    by evidence weight.
    """
    settings = settings or get_settings()
    default = settings.default_exploration_score
    if total <= 0:
        return default

    breadth = 0.6 * _breadth(category_counts) + 0.4 * _breadth(provider_counts)
    observed = 20 + 75 * breadth
    weight = evidence_weight(total, settings.behavior_evidence_pivot)
    return int(round((1 - weight) * default + weight * observed))


def compute_quality_threshold(positive_ratings: list[int], settings: Settings | None = None) -> int:
    """25th percentile of ratings the user engaged positively with, blended with the default."""
    settings = settings or get_settings()
    default = settings.default_quality_threshold
    if not positive_ratings:
        return default

    observed = percentile(positive_ratings, 25)
    weight = evidence_weight(len(positive_ratings), settings.behavior_evidence_pivot)
    return max(0, min(100, int(round((1 - weight) * default + weight * observed))))


def _is_positive(record: InteractionRecord) -> bool:
    try:
        kind = InteractionType(record.interaction_type)
    except ValueError:
        return False
    return kind in POSITIVE_INTERACTIONS or (record.engagement_level or 0) >= POSITIVE_ENGAGEMENT_LEVEL


def summarize_interactions(records: list[InteractionRecord], settings: Settings | None = None) -> ProfileStats:
    """Recompute every derived profile field from a user's interaction history."""
    settings = settings or get_settings()
    category_counts = Counter(r.category for r in records if r.category)
    provider_counts = Counter(r.provider for r in records if r.provider)
    positive_ratings = [r.rating for r in records if r.rating is not None and _is_positive(r)]

    durations = [r.session_duration for r in records if r.session_duration]
    hours = Counter(_as_utc(r.created_at).hour for r in records)

    return ProfileStats(
        exploration_score=compute_exploration_score(category_counts, provider_counts, len(records), settings),
        quality_threshold=compute_quality_threshold(positive_ratings, settings),
        total_interactions=len(records),
        average_session_duration=int(round(sum(durations) / len(durations))) if durations else None,
        most_active_hour=hours.most_common(1)[0][0] if hours else None,
        last_active_at=max((_as_utc(r.created_at) for r in records), default=None),
    )


def apply_profile_stats(profile: UserBehaviorProfile, stats: ProfileStats) -> None:
    """Copy recomputed stats onto a profile row."""
    profile.exploration_score = stats.exploration_score
    profile.quality_threshold = stats.quality_threshold
    profile.total_interactions = stats.total_interactions
    profile.average_session_duration = stats.average_session_duration
    profile.most_active_hour = stats.most_active_hour
    if stats.last_active_at:
        profile.last_active_at = stats.last_active_at
    profile.last_refreshed_at = utcnow()


def analyze_records(records: list[InteractionRecord], now: datetime | None = None) -> BehaviorAnalytics:
    """Pattern summary over a window of interactions."""
    if not records:
        return BehaviorAnalytics(peak_usage_hours=[14, 15, 16])

    now = _as_utc(now or utcnow())
    today = now.date()

    # Daily average engagement, oldest day first
    by_day: dict = {}
    for r in records:
        day = _as_utc(r.created_at).date()
        if (today - day).days < TREND_DAYS:
            by_day.setdefault(day, []).append(r.engagement_level or 5)
    trends = []
    for offset in range(TREND_DAYS - 1, -1, -1):
        day = today - timedelta(days=offset)
        levels = by_day.get(day)
        trends.append({
            "date": day.isoformat(),
            "avg_engagement": round(sum(levels) / len(levels), 2) if levels else None,
            "interactions": len(levels) if levels else 0,
        })

    hour_counts = Counter(_as_utc(r.created_at).hour for r in records)
    peak_hours = [hour for hour, _ in sorted(hour_counts.items(), key=lambda kv: (-kv[1], kv[0]))[:3]]

    # Lower engagement variance = more clearly defined preferences
    if len(records) < 5:
        strength = 0.3
    else:
        levels = [r.engagement_level or 5 for r in records]
        mean = sum(levels) / len(levels)
        variance = sum((level - mean) ** 2 for level in levels) / len(levels)
        strength = max(0.1, min(1.0, 1 - variance / 25))

    durations = [r.session_duration for r in records if r.session_duration]

    return BehaviorAnalytics(
        total_interactions=len(records),
        category_breakdown=dict(Counter(r.category for r in records if r.category)),
        provider_breakdown=dict(Counter(r.provider for r in records if r.provider)),
        interaction_type_breakdown=dict(Counter(r.interaction_type for r in records)),
        device_breakdown=dict(Counter(r.device_type for r in records if r.device_type)),
        engagement_trends=trends,
        peak_usage_hours=peak_hours,
        preference_strength=round(strength, 3),
        average_session_duration=round(sum(durations) / len(durations), 1) if durations else None,
    )


def default_profile(user_id: int, settings: Settings | None = None) -> BehaviorProfileSnapshot:
    """Cold-start profile for users with no history."""
    settings = settings or get_settings()
    return BehaviorProfileSnapshot(
        user_id=user_id,
        exploration_score=settings.default_exploration_score,
        quality_threshold=settings.default_quality_threshold,
        total_interactions=0,
        is_cold_start=True,
    )


def snapshot_from_profile(profile: UserBehaviorProfile) -> BehaviorProfileSnapshot:
    return BehaviorProfileSnapshot(
        user_id=profile.user_id,
        exploration_score=profile.exploration_score,
        quality_threshold=profile.quality_threshold,
        total_interactions=profile.total_interactions or 0,
        average_session_duration=profile.average_session_duration,
        most_active_hour=profile.most_active_hour,
        last_active_at=profile.last_active_at,
        is_cold_start=not profile.total_interactions,
    )


def interaction_records_query(user_id: int, since: datetime | None = None):
    """Select a user's interactions joined with model catalog fields, oldest first."""
    query = (
        select(
            UserModelInteraction.interaction_type,
            UserModelInteraction.engagement_level,
            UserModelInteraction.created_at,
            UserModelInteraction.session_duration,
            UserModelInteraction.device_type,
            AIModel.category,
            AIModel.provider,
            AIModel.rating,
        )
        .outerjoin(AIModel, UserModelInteraction.model_id == AIModel.id)
        .where(UserModelInteraction.user_id == user_id)
        .order_by(UserModelInteraction.created_at.asc(), UserModelInteraction.id.asc())
    )
    if since is not None:
        query = query.where(UserModelInteraction.created_at >= since)
    return query


def record_from_row(row) -> InteractionRecord:
    return InteractionRecord(
        interaction_type=row.interaction_type,
        engagement_level=row.engagement_level,
        created_at=row.created_at,
        category=row.category,
        provider=row.provider,
        rating=row.rating,
        session_duration=row.session_duration,
        device_type=row.device_type,
    )


async def load_interaction_records(
    db: AsyncSession,
    user_id: int,
    since: datetime | None = None,
) -> list[InteractionRecord]:
    result = await db.execute(interaction_records_query(user_id, since))
    return [record_from_row(row) for row in result]


async def get_behavior_profile(db: AsyncSession, user_id: int) -> BehaviorProfileSnapshot:
    """Stored profile, or cold-start defaults when the user has none. Read-only."""
    result = await db.execute(
        select(UserBehaviorProfile).where(UserBehaviorProfile.user_id == user_id)
    )
    profile = result.scalar_one_or_none()
    if profile is None:
        return default_profile(user_id)
    return snapshot_from_profile(profile)


async def refresh_behavior_profile(db: AsyncSession, user_id: int) -> UserBehaviorProfile:
    """Recompute the cached profile row from the full interaction log."""
    records = await load_interaction_records(db, user_id)
    stats = summarize_interactions(records)

    result = await db.execute(
        select(UserBehaviorProfile).where(UserBehaviorProfile.user_id == user_id)
    )
    profile = result.scalar_one_or_none()
    if profile is None:
        profile = UserBehaviorProfile(user_id=user_id)
        db.add(profile)

    apply_profile_stats(profile, stats)
    await db.flush()
    logger.info(
        "Refreshed behavior profile for user %s (interactions=%d, exploration=%d, quality=%d)",
        user_id, stats.total_interactions, stats.exploration_score, stats.quality_threshold,
    )
    return profile


async def analyze_behavior_patterns(db: AsyncSession, user_id: int, days: int | None = None) -> BehaviorAnalytics:
    """Breakdowns and trends over the last `days` (default: behavior_window_days)."""
    days = days or get_settings().behavior_window_days
    since = utcnow() - timedelta(days=days)
    records = await load_interaction_records(db, user_id, since=since)
    return analyze_records(records)


async def get_recommendation_insights(db: AsyncSession, user_id: int) -> dict:
    """Top affinities, profile snapshot and a recent-activity summary."""
    categories = await get_category_affinities(db, user_id, limit=5)
    providers = await get_provider_affinities(db, user_id, limit=5)
    profile = await get_behavior_profile(db, user_id)
    recent = await load_interaction_records(db, user_id, since=utcnow() - timedelta(days=TREND_DAYS))

    return {
        "user_id": user_id,
        "top_categories": [
            {"category": a.category, "score": round(a.affinity_score, 4), "interaction_count": a.interaction_count}
            for a in categories
        ],
        "top_providers": [
            {
                "provider": a.provider,
                "score": round(a.affinity_score, 4),
                "interaction_count": a.interaction_count,
                "quality_rating": a.quality_rating,
            }
            for a in providers
        ],
        "profile": profile.to_dict(),
        "recent_activity": {
            "days": TREND_DAYS,
            "interactions": len(recent),
            "by_type": dict(Counter(r.interaction_type for r in recent)),
            "last_active_at": max((_as_utc(r.created_at) for r in recent), default=None),
        },
    }
