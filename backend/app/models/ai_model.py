"""AI model catalog: read-only to the recommendation core."""

from sqlalchemy import Column, String, Integer, Boolean, Text, Index, JSON

from app.models.base import Base, TimestampMixin, IntegerIDMixin


class AIModel(IntegerIDMixin, TimestampMixin, Base):
    __tablename__ = "ai_models"

    model_key = Column(String(100), unique=True, nullable=False)  # e.g. "runware:101@1"
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    category = Column(String(100), nullable=False, index=True)
    provider = Column(String(100), nullable=False, index=True)
    version = Column(String(50), nullable=False, default="1.0")

    # Catalog signals
    featured = Column(Boolean, default=False, nullable=False)
    rating = Column(Integer, default=50, nullable=False)  # 1-100
    downloads = Column(Integer, default=0, nullable=False)
    likes = Column(Integer, default=0, nullable=False)
    discussions = Column(Integer, default=0, nullable=False)
    images_generated = Column(Integer, default=0, nullable=False)
    tags = Column(JSON, default=list, nullable=False)
    thumbnail = Column(Text)

    __table_args__ = (
        Index("idx_ai_models_featured_rating", "featured", "rating"),
    )
