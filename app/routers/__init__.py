# app/routers/__init__.py
from fastapi import APIRouter

from .vehicles_router import router as vehicles_router
from .bookings_router import router as bookings_router
from .wizard_router import router as wizard_router
from .promos_router import router as promos_router
from .activity_router import router as activity_router

router = APIRouter()

router.include_router(vehicles_router)
router.include_router(bookings_router)
router.include_router(wizard_router)
router.include_router(promos_router)
router.include_router(activity_router)
