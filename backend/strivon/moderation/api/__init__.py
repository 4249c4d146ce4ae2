"""Moderation API routers."""

from fastapi import APIRouter

from . import media_admin, storage_events

router = APIRouter()
router.include_router(media_admin.router)
router.include_router(storage_events.router)

__all__ = ["router"]
