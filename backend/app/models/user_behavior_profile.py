"""User behavior profile: cached summary derived from the interaction log."""

from sqlalchemy import Column, Integer, DateTime

from app.models.base import Base, TimestampMixin, IntegerIDMixin


class UserBehaviorProfile(IntegerIDMixin, TimestampMixin, Base):
    __tablename__ = "user_behavior_profiles"

    user_id = Column(Integer, unique=True, nullable=False)

    exploration_score = Column(Integer, default=60, nullable=False)  # 0-100, breadth vs depth
    quality_threshold = Column(Integer, default=70, nullable=False)  # 0-100, min rating engaged with
    total_interactions = Column(Integer, default=0, nullable=False)
    average_session_duration = Column(Integer)  # seconds
    most_active_hour = Column(Integer)  # 0-23
    last_active_at = Column(DateTime(timezone=True))
    last_refreshed_at = Column(DateTime(timezone=True))
