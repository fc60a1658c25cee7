"""Celery tasks for behavior profile refreshes and affinity decay."""

import logging
from datetime import timedelta

from sqlalchemy import select

from app.config import get_settings
from app.tasks.celery_app import celery_app
from app.models.base import SyncSessionLocal, utcnow

# Import ALL models so foreign keys resolve in the worker process
import app.models  # noqa: F401
from app.models.user_affinity import UserCategoryAffinity, UserProviderAffinity
from app.models.user_behavior_profile import UserBehaviorProfile
from app.models.user_interaction import UserModelInteraction
from app.services.affinity_service import decay_affinity_score
from app.services.behavior_profile_service import (
    apply_profile_stats,
    interaction_records_query,
    record_from_row,
    summarize_interactions,
)

logger = logging.getLogger(__name__)


def _refresh_profile(session, user_id: int) -> UserBehaviorProfile:
    records = [record_from_row(row) for row in session.execute(interaction_records_query(user_id))]
    stats = summarize_interactions(records)

    profile = session.execute(
        select(UserBehaviorProfile).where(UserBehaviorProfile.user_id == user_id)
    ).scalar_one_or_none()
    if not profile:
        profile = UserBehaviorProfile(user_id=user_id)
        session.add(profile)

    apply_profile_stats(profile, stats)
    return profile


@celery_app.task(name="app.tasks.profile_tasks.refresh_behavior_profile")
def refresh_behavior_profile(user_id: int):
    """Recompute one user's behavior profile from the full interaction log.

    Dispatched after every tracked interaction.
    """
    with SyncSessionLocal() as session:
        try:
            profile = _refresh_profile(session, user_id)
            session.commit()
            logger.info(
                "Refreshed behavior profile for user %s (exploration=%s, quality=%s)",
                user_id, profile.exploration_score, profile.quality_threshold,
            )
        except Exception:
            session.rollback()
            logger.exception("Failed to refresh behavior profile for user %s", user_id)
            raise


@celery_app.task(name="app.tasks.profile_tasks.refresh_active_behavior_profiles")
def refresh_active_behavior_profiles():
    """Refresh profiles of users with interactions in the last window (runs every 30 min via beat)."""
    settings = get_settings()
    cutoff = utcnow() - timedelta(days=settings.behavior_window_days)

    with SyncSessionLocal() as session:
        try:
            user_ids = session.execute(
                select(UserModelInteraction.user_id)
                .where(UserModelInteraction.created_at >= cutoff)
                .distinct()
            ).scalars().all()

            for uid in user_ids:
                _refresh_profile(session, uid)

            session.commit()
            if user_ids:
                logger.info("Refreshed %d active behavior profiles", len(user_ids))

        except Exception:
            session.rollback()
            logger.exception("Failed to refresh active behavior profiles")
            raise


@celery_app.task(name="app.tasks.profile_tasks.apply_affinity_decay")
def apply_affinity_decay():
    """Apply daily time decay to every category and provider affinity (runs at 3 AM via beat).

    Scores drift toward 0 with the configured half-life; interaction counts are kept.
    """
    half_life = get_settings().affinity_half_life_days

    with SyncSessionLocal() as session:
        try:
            updated = 0
            for model in (UserCategoryAffinity, UserProviderAffinity):
                for affinity in session.execute(select(model)).scalars():
                    affinity.affinity_score = decay_affinity_score(affinity.affinity_score, days=1.0, half_life=half_life)
                    updated += 1

            session.commit()
            if updated:
                logger.info("Applied time decay to %d affinity rows", updated)

        except Exception:
            session.rollback()
            logger.exception("Failed to apply affinity decay")
            raise
