"""Catalog reads: candidate pools and featured lists from the ai_models table."""

from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.ai_model import AIModel


async def get_model(db: AsyncSession, model_id: int) -> AIModel | None:
    result = await db.execute(select(AIModel).where(AIModel.id == model_id))
    return result.scalar_one_or_none()


async def get_candidate_models(
    db: AsyncSession,
    exclude_ids: Iterable[int] = (),
    pool_size: int = 500,
) -> list[AIModel]:
    """Candidate pool for ranking: featured and well-rated models first."""
    query = select(AIModel)
    excluded = list(exclude_ids)
    if excluded:
        query = query.where(AIModel.id.notin_(excluded))
    query = (
        query.order_by(
            AIModel.featured.desc(),
            AIModel.rating.desc(),
            AIModel.created_at.desc(),
            AIModel.id.asc(),
        )
        .limit(pool_size)
    )
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_featured_models(db: AsyncSession, limit: int = 20) -> list[AIModel]:
    """Featured models by rating, topped up with the best-rated remaining models.

    Non-empty whenever the catalog is non-empty.
    """
    result = await db.execute(
        select(AIModel)
        .where(AIModel.featured == True)  # noqa: E712
        .order_by(AIModel.rating.desc(), AIModel.created_at.desc(), AIModel.id.asc())
        .limit(limit)
    )
    models = list(result.scalars().all())

    if len(models) < limit:
        seen = [m.id for m in models]
        query = select(AIModel).where(AIModel.featured == False)  # noqa: E712
        if seen:
            query = query.where(AIModel.id.notin_(seen))
        result = await db.execute(
            query.order_by(AIModel.rating.desc(), AIModel.downloads.desc(), AIModel.id.asc())
            .limit(limit - len(models))
        )
        models.extend(result.scalars().all())

    return models
