"""Interaction recorder: validates and appends user-model interaction events."""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import PersistenceError, ValidationError
from app.models.user_interaction import (
    DeviceType,
    InteractionType,
    ReferralSource,
    UserModelInteraction,
)

logger = logging.getLogger(__name__)

# Engagement estimate per interaction type when the client does not send one
BASE_ENGAGEMENT = {
    InteractionType.VIEW: 3,
    InteractionType.LIKE: 6,
    InteractionType.BOOKMARK: 7,
    InteractionType.GENERATE: 9,
    InteractionType.SHARE: 8,
    InteractionType.DOWNLOAD: 8,
}


def _coerce_enum(enum_cls, value, field: str, errors: list[str]):
    if value is None:
        return None
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        errors.append(f"{field} must be one of: {allowed}")
        return None


def validate_interaction(
    user_id: int,
    model_id: int,
    interaction_type: InteractionType | str,
    engagement_level: int = 5,
    session_duration: int | None = None,
    device_type: DeviceType | str | None = None,
    referral_source: ReferralSource | str = ReferralSource.DIRECT,
) -> tuple[InteractionType, DeviceType | None, ReferralSource]:
    """Check an interaction payload. Raises ValidationError listing every problem."""
    errors: list[str] = []

    if not isinstance(user_id, int) or isinstance(user_id, bool) or user_id <= 0:
        errors.append("userId must be a positive integer")
    if not isinstance(model_id, int) or isinstance(model_id, bool) or model_id <= 0:
        errors.append("modelId must be a positive integer")

    kind = _coerce_enum(InteractionType, interaction_type, "interactionType", errors)
    if interaction_type is None:
        errors.append("interactionType is required")

    if not isinstance(engagement_level, int) or isinstance(engagement_level, bool) or not 1 <= engagement_level <= 10:
        errors.append("engagementLevel must be between 1 and 10")
    if session_duration is not None and session_duration < 0:
        errors.append("sessionDuration cannot be negative")

    device = _coerce_enum(DeviceType, device_type, "deviceType", errors)
    referral = _coerce_enum(ReferralSource, referral_source or ReferralSource.DIRECT, "referralSource", errors)

    if errors:
        raise ValidationError(errors)
    return kind, device, referral


def estimate_engagement_level(
    interaction_type: InteractionType,
    session_duration: int | None = None,
    device_type: DeviceType | None = None,
) -> int:
    """Derive a 1-10 engagement level from the action and its context."""
    score = BASE_ENGAGEMENT.get(interaction_type, 3)

    if session_duration:
        if session_duration > 300:
            score += 2
        elif session_duration > 60:
            score += 1

    # Generating from a phone shows higher intent
    if device_type == DeviceType.MOBILE and interaction_type == InteractionType.GENERATE:
        score += 1

    return min(10, score)


async def record_interaction(
    db: AsyncSession,
    user_id: int,
    model_id: int,
    interaction_type: InteractionType | str,
    engagement_level: int = 5,
    session_duration: int | None = None,
    device_type: DeviceType | str | None = None,
    referral_source: ReferralSource | str = ReferralSource.DIRECT,
) -> UserModelInteraction:
    """Append one interaction row and return it (its id is the interaction id).

    Does not touch affinity tables; see affinity_service.apply_interaction_signal.
    """
    kind, device, referral = validate_interaction(
        user_id, model_id, interaction_type, engagement_level,
        session_duration, device_type, referral_source,
    )

    interaction = UserModelInteraction(
        user_id=user_id,
        model_id=model_id,
        interaction_type=kind.value,
        engagement_level=engagement_level,
        session_duration=session_duration,
        device_type=device.value if device else None,
        referral_source=referral.value,
    )
    try:
        db.add(interaction)
        await db.flush()
    except SQLAlchemyError as e:
        raise PersistenceError(f"Failed to record interaction for user {user_id}: {e}") from e

    logger.debug("Recorded %s interaction %s (user=%s, model=%s)", kind.value, interaction.id, user_id, model_id)
    return interaction
