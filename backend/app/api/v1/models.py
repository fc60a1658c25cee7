"""AI model catalog endpoints (read-only)."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import get_db
from app.schemas.ai_model import AIModelRead
from app.services.catalog_service import get_featured_models, get_model

router = APIRouter(prefix="/models", tags=["models"])


@router.get("/featured", response_model=list[AIModelRead])
async def list_featured_models(
    db: AsyncSession = Depends(get_db),
    limit: int = Query(20, ge=1, le=100),
):
    """Featured models, topped up with the best-rated ones."""
    return await get_featured_models(db, limit)


@router.get("/{model_id}", response_model=AIModelRead)
async def get_ai_model(
    model_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Get a single catalog model."""
    model = await get_model(db, model_id)
    if not model:
        raise HTTPException(status_code=404, detail="Model not found")
    return model
