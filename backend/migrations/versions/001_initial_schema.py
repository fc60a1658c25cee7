"""Initial schema: ai_models, user_model_interactions, affinities, behavior profiles.

Revision ID: 001
Revises:
Create Date: 2026-10-16
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # 1. ai_models
    op.create_table(
        "ai_models",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("model_key", sa.String(100), unique=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, server_default="", nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("provider", sa.String(100), nullable=False),
        sa.Column("version", sa.String(50), server_default="1.0", nullable=False),
        sa.Column("featured", sa.Boolean, server_default=sa.text("false"), nullable=False),
        sa.Column("rating", sa.Integer, server_default=sa.text("50"), nullable=False),
        sa.Column("downloads", sa.Integer, server_default=sa.text("0"), nullable=False),
        sa.Column("likes", sa.Integer, server_default=sa.text("0"), nullable=False),
        sa.Column("discussions", sa.Integer, server_default=sa.text("0"), nullable=False),
        sa.Column("images_generated", sa.Integer, server_default=sa.text("0"), nullable=False),
        sa.Column("tags", sa.JSON, server_default=sa.text("'[]'"), nullable=False),
        sa.Column("thumbnail", sa.Text),
        *_timestamps(),
    )
    op.create_index("ix_ai_models_category", "ai_models", ["category"])
    op.create_index("ix_ai_models_provider", "ai_models", ["provider"])
    op.create_index("idx_ai_models_featured_rating", "ai_models", ["featured", "rating"])

    # 2. user_model_interactions (append-only)
    op.create_table(
        "user_model_interactions",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, nullable=False),
        sa.Column("model_id", sa.Integer, sa.ForeignKey("ai_models.id", ondelete="CASCADE"), nullable=False),
        sa.Column("interaction_type", sa.String(20), nullable=False),
        sa.Column("engagement_level", sa.Integer, server_default=sa.text("5"), nullable=False),
        sa.Column("session_duration", sa.Integer),
        sa.Column("device_type", sa.String(20)),
        sa.Column("referral_source", sa.String(20), server_default="direct", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("idx_interactions_user_type", "user_model_interactions", ["user_id", "interaction_type"])
    op.create_index("idx_interactions_user_created", "user_model_interactions", ["user_id", "created_at"])
    op.create_index("idx_interactions_model", "user_model_interactions", ["model_id"])

    # 3. user_category_affinities
    op.create_table(
        "user_category_affinities",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("affinity_score", sa.Float, server_default=sa.text("0"), nullable=False),
        sa.Column("interaction_count", sa.Integer, server_default=sa.text("0"), nullable=False),
        sa.Column("last_interaction_at", sa.DateTime(timezone=True)),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "category", name="uq_category_affinity_user_category"),
    )
    op.create_index("ix_user_category_affinities_user_id", "user_category_affinities", ["user_id"])

    # 4. user_provider_affinities
    op.create_table(
        "user_provider_affinities",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, nullable=False),
        sa.Column("provider", sa.String(100), nullable=False),
        sa.Column("affinity_score", sa.Float, server_default=sa.text("0"), nullable=False),
        sa.Column("interaction_count", sa.Integer, server_default=sa.text("0"), nullable=False),
        sa.Column("quality_rating", sa.Integer, server_default=sa.text("70"), nullable=False),
        sa.Column("last_interaction_at", sa.DateTime(timezone=True)),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "provider", name="uq_provider_affinity_user_provider"),
    )
    op.create_index("ix_user_provider_affinities_user_id", "user_provider_affinities", ["user_id"])

    # 5. user_behavior_profiles
    op.create_table(
        "user_behavior_profiles",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, unique=True, nullable=False),
        sa.Column("exploration_score", sa.Integer, server_default=sa.text("60"), nullable=False),
        sa.Column("quality_threshold", sa.Integer, server_default=sa.text("70"), nullable=False),
        sa.Column("total_interactions", sa.Integer, server_default=sa.text("0"), nullable=False),
        sa.Column("average_session_duration", sa.Integer),
        sa.Column("most_active_hour", sa.Integer),
        sa.Column("last_active_at", sa.DateTime(timezone=True)),
        sa.Column("last_refreshed_at", sa.DateTime(timezone=True)),
        *_timestamps(),
    )


def downgrade() -> None:
    op.drop_table("user_behavior_profiles")
    op.drop_table("user_provider_affinities")
    op.drop_table("user_category_affinities")
    op.drop_table("user_model_interactions")
    op.drop_table("ai_models")
