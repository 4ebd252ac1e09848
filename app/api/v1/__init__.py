"""API v1 routes."""

from fastapi import APIRouter

from app.api.v1 import auth, health, me, profiles, rooms

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(profiles.router, prefix="/profiles", tags=["profiles"])
router.include_router(me.router, prefix="/me", tags=["me"])
router.include_router(rooms.router, prefix="/rooms", tags=["rooms"])
