from fastapi import APIRouter

from . import dashboard, health, market


router = APIRouter(prefix="/api")
router.include_router(dashboard.router)
router.include_router(health.router)
router.include_router(market.router)
