"""User-model interaction log: append-only, one row per tracked action."""

import enum

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, func

from app.models.base import Base, IntegerIDMixin, utcnow


class InteractionType(str, enum.Enum):
    VIEW = "view"
    LIKE = "like"
    BOOKMARK = "bookmark"
    GENERATE = "generate"
    SHARE = "share"
    DOWNLOAD = "download"


class DeviceType(str, enum.Enum):
    MOBILE = "mobile"
    TABLET = "tablet"
    DESKTOP = "desktop"


class ReferralSource(str, enum.Enum):
    SEARCH = "search"
    RECOMMENDATION = "recommendation"
    DIRECT = "direct"
    FEATURED = "featured"


# Interaction kinds that count as positive engagement for quality analysis
POSITIVE_INTERACTIONS = frozenset({
    InteractionType.LIKE,
    InteractionType.BOOKMARK,
    InteractionType.GENERATE,
    InteractionType.SHARE,
    InteractionType.DOWNLOAD,
})


class UserModelInteraction(IntegerIDMixin, Base):
    __tablename__ = "user_model_interactions"

    user_id = Column(Integer, nullable=False)
    model_id = Column(Integer, ForeignKey("ai_models.id", ondelete="CASCADE"), nullable=False)
    interaction_type = Column(String(20), nullable=False)  # InteractionType value
    engagement_level = Column(Integer, default=5, nullable=False)  # 1-10
    session_duration = Column(Integer)  # seconds
    device_type = Column(String(20))
    referral_source = Column(String(20), default=ReferralSource.DIRECT.value, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("idx_interactions_user_type", "user_id", "interaction_type"),
        Index("idx_interactions_user_created", "user_id", "created_at"),
        Index("idx_interactions_model", "model_id"),
    )
