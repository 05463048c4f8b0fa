"""
🧭 ReelNest • API v1 Router Aggregator
=====================================

Exports the **combined `router`** and a `build_v1_router()` factory.

Layout
------
- `/user/...` → watch history, resume/playback entry, family sharing
- `/ops/...`  → cron-triggered maintenance (shared-secret bearer)

Quick usage
-----------
    from app.api.v1.routers import router as v1_router
    app.include_router(v1_router, prefix="/api/v1")
"""

from fastapi import APIRouter

from .ops import cron_router
from .user import family_router, resume_router, watch_history_router


def build_v1_router() -> APIRouter:
    """Compose the API v1 surface into a single `APIRouter`."""
    r = APIRouter()

    r.include_router(watch_history_router, prefix="/user")
    r.include_router(resume_router, prefix="/user")
    r.include_router(family_router, prefix="/user")
    r.include_router(cron_router, prefix="/ops")

    return r


router = build_v1_router()

__all__ = ["build_v1_router", "router"]
