"""Pydantic schemas for interaction tracking."""

from pydantic import Field

from app.models.user_interaction import DeviceType, InteractionType, ReferralSource
from app.schemas.ai_model import CamelModel


class TrackInteractionRequest(CamelModel):
    """Body of POST /interactions/track."""

    user_id: int = Field(gt=0)
    model_id: int = Field(gt=0)
    interaction_type: InteractionType
    engagement_level: int | None = Field(None, ge=1, le=10)
    session_duration: int | None = Field(None, ge=0)
    device_type: DeviceType | None = None
    referral_source: ReferralSource = ReferralSource.DIRECT
    estimate_engagement: bool = False


class TrackInteractionResponse(CamelModel):
    success: bool
    interaction_id: int | None = None
    message: str | None = None
