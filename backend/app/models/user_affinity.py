"""Per-user category and provider affinity rows, scores in [0.0, 1.0]."""

from sqlalchemy import Column, Integer, Float, String, DateTime, UniqueConstraint

from app.models.base import Base, TimestampMixin, IntegerIDMixin, utcnow


class UserCategoryAffinity(IntegerIDMixin, TimestampMixin, Base):
    __tablename__ = "user_category_affinities"

    user_id = Column(Integer, nullable=False, index=True)
    category = Column(String(100), nullable=False)
    affinity_score = Column(Float, default=0.0, nullable=False)
    interaction_count = Column(Integer, default=0, nullable=False)
    last_interaction_at = Column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "category", name="uq_category_affinity_user_category"),
    )


class UserProviderAffinity(IntegerIDMixin, TimestampMixin, Base):
    __tablename__ = "user_provider_affinities"

    user_id = Column(Integer, nullable=False, index=True)
    provider = Column(String(100), nullable=False)
    affinity_score = Column(Float, default=0.0, nullable=False)
    interaction_count = Column(Integer, default=0, nullable=False)
    quality_rating = Column(Integer, default=70, nullable=False)  # last seen model rating, 1-100
    last_interaction_at = Column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "provider", name="uq_provider_affinity_user_provider"),
    )
