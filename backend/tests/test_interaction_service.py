import pytest
from sqlalchemy import select

from app.exceptions import ValidationError
from app.models.user_interaction import DeviceType, InteractionType, ReferralSource, UserModelInteraction
from app.services.interaction_service import (
    estimate_engagement_level,
    record_interaction,
    validate_interaction,
)


def test_valid_payload_is_coerced_to_enums():
    kind, device, referral = validate_interaction(1, 42, "bookmark", 8, 120, "mobile", "search")

    assert kind is InteractionType.BOOKMARK
    assert device is DeviceType.MOBILE
    assert referral is ReferralSource.SEARCH


def test_referral_defaults_to_direct():
    _, device, referral = validate_interaction(1, 42, "view")

    assert device is None
    assert referral is ReferralSource.DIRECT


def test_validation_reports_every_problem():
    with pytest.raises(ValidationError) as exc_info:
        validate_interaction(0, -3, "poke", 11)

    errors = exc_info.value.errors
    assert "userId must be a positive integer" in errors
    assert "modelId must be a positive integer" in errors
    assert "engagementLevel must be between 1 and 10" in errors
    assert any(e.startswith("interactionType must be one of") for e in errors)


def test_boolean_engagement_level_is_rejected():
    with pytest.raises(ValidationError) as exc_info:
        validate_interaction(1, 2, "view", True)

    assert "engagementLevel must be between 1 and 10" in exc_info.value.errors


def test_missing_interaction_type_is_rejected():
    with pytest.raises(ValidationError) as exc_info:
        validate_interaction(1, 2, None)

    assert "interactionType is required" in exc_info.value.errors


def test_engagement_estimate_rises_with_session_length():
    short = estimate_engagement_level(InteractionType.VIEW, 30)
    medium = estimate_engagement_level(InteractionType.VIEW, 120)
    long = estimate_engagement_level(InteractionType.VIEW, 600)

    assert short < medium < long


def test_engagement_estimate_is_capped():
    assert estimate_engagement_level(InteractionType.GENERATE, 900, DeviceType.MOBILE) == 10


@pytest.mark.asyncio
async def test_record_interaction_appends_row(db, catalog):
    model_id = catalog["runware:101@1"]

    interaction = await record_interaction(db, 5, model_id, "like", engagement_level=6, device_type="desktop")
    await db.commit()

    assert interaction.id is not None
    rows = (await db.execute(select(UserModelInteraction))).scalars().all()
    assert len(rows) == 1
    assert rows[0].interaction_type == "like"
    assert rows[0].device_type == "desktop"
    assert rows[0].referral_source == "direct"


@pytest.mark.asyncio
async def test_record_interaction_rejects_bad_payload_without_writing(db):
    with pytest.raises(ValidationError):
        await record_interaction(db, 1, 0, "view")

    rows = (await db.execute(select(UserModelInteraction))).scalars().all()
    assert rows == []
