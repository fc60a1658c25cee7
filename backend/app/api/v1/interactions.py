"""Interaction tracking endpoint: records user-model events and updates affinities."""

import logging
from typing import Callable

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.dependencies.cache import get_recommendation_cache
from app.dependencies.tasks import get_profile_refresh_dispatcher
from app.exceptions import PersistenceError
from app.models.base import get_db
from app.models.user_interaction import UserModelInteraction
from app.schemas.interaction import TrackInteractionRequest, TrackInteractionResponse
from app.services.affinity_service import apply_interaction_signal
from app.services.cache import user_recommendations_pattern
from app.services.behavior_profile_service import refresh_behavior_profile
from app.services.catalog_service import get_model
from app.services.interaction_service import estimate_engagement_level, record_interaction

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/interactions", tags=["interactions"])


@router.post("/track", response_model=TrackInteractionResponse)
async def track_interaction(
    payload: TrackInteractionRequest,
    db: AsyncSession = Depends(get_db),
    cache=Depends(get_recommendation_cache),
    dispatch_refresh: Callable[[int], bool] = Depends(get_profile_refresh_dispatcher),
):
    """Record an interaction, then update affinities best-effort."""
    engagement_level = payload.engagement_level
    if engagement_level is None:
        if payload.estimate_engagement:
            engagement_level = estimate_engagement_level(
                payload.interaction_type, payload.session_duration, payload.device_type
            )
        else:
            engagement_level = 5

    try:
        interaction = await record_interaction(
            db,
            user_id=payload.user_id,
            model_id=payload.model_id,
            interaction_type=payload.interaction_type,
            engagement_level=engagement_level,
            session_duration=payload.session_duration,
            device_type=payload.device_type,
            referral_source=payload.referral_source,
        )
        # Persist the event on its own so affinity failures cannot roll it back
        await db.commit()
    except (PersistenceError, SQLAlchemyError):
        logger.exception("Failed to track interaction for user %s", payload.user_id)
        await db.rollback()
        return TrackInteractionResponse(success=False, message="Failed to track interaction")

    # Rollback in the affinity step expires loaded attributes
    interaction_id = interaction.id
    await _apply_signal(db, interaction)
    if not dispatch_refresh(payload.user_id):
        await _refresh_profile_now(db, payload.user_id)
    await cache.flush_pattern(user_recommendations_pattern(payload.user_id))

    return TrackInteractionResponse(success=True, interaction_id=interaction_id)


async def _apply_signal(db: AsyncSession, interaction: UserModelInteraction) -> None:
    """Affinity updates are a side channel; log and continue on failure."""
    user_id, model_id = interaction.user_id, interaction.model_id
    try:
        model = await get_model(db, model_id)
        if model is None:
            logger.warning("Model %s not in catalog; skipping affinity update", model_id)
            return
        await apply_interaction_signal(db, interaction, model)
        await db.commit()
    except (PersistenceError, SQLAlchemyError):
        logger.exception("Failed to update affinities for user %s", user_id)
        await db.rollback()


async def _refresh_profile_now(db: AsyncSession, user_id: int) -> None:
    """Recompute the profile in-request when no worker could take the job."""
    try:
        await refresh_behavior_profile(db, user_id)
        await db.commit()
    except SQLAlchemyError:
        logger.exception("In-request profile refresh failed for user %s", user_id)
        await db.rollback()
