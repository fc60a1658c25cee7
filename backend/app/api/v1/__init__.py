"""API v1 router aggregation."""

from fastapi import APIRouter

from app.api.v1.recommendations import router as recommendations_router
from app.api.v1.interactions import router as interactions_router
from app.api.v1.users import router as users_router
from app.api.v1.models import router as models_router

router = APIRouter(prefix="/api/v1")

router.include_router(recommendations_router)
router.include_router(interactions_router)
router.include_router(users_router)
router.include_router(models_router)
