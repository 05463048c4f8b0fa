
# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ ReelNest · User API (Watch history & continue watching)                  ║
# ╠──────────────────────────────────────────────────────────────────────────╣
# ║ Endpoints (user-authenticated):                                          ║
# ║  - GET    /watch-history                     → Recent records            ║
# ║  - GET    /watch-history?continue_watching=1 → Continue-watching row     ║
# ║  - POST   /watch-history                     → Record progress (204)     ║
# ║  - DELETE /watch-history                     → Delete record/series (204)║
# ╠──────────────────────────────────────────────────────────────────────────╣
# ║ Practices                                                                ║
# ║  - Auth: `get_current_user`; every query is scoped to the caller.        ║
# ║  - Cache control: per-user payloads are `no-store`.                      ║
# ║  - Metadata failures never fail the listing; items degrade or drop.      ║
# ╚══════════════════════════════════════════════════════════════════════════╝
"""User-facing watch-history endpoints."""

import logging
from typing import Optional, Union

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.http_utils import json_no_store, no_store
from app.core.security import get_current_user
from app.db.models.user import User
from app.db.session import get_async_db
from app.schemas.enums import MediaType
from app.schemas.watch import (
    ContinueWatchingList,
    WatchHistoryDelete,
    WatchHistoryList,
    WatchHistoryOut,
    WatchProgressIn,
)
from app.services.continue_watching_service import DEFAULT_LIMIT, get_continue_watching_items
from app.services.tmdb_client import TMDBClient, get_tmdb_client
from app.services import watch_history_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Watch history"])


# ─────────────────────────────────────────────────────────────────────────────
# 📜 List
# ─────────────────────────────────────────────────────────────────────────────
@router.get(
    "/watch-history",
    response_model=Union[WatchHistoryList, ContinueWatchingList],
    summary="Recent watch history, or the continue-watching row",
)
async def get_watch_history(
    continue_watching: bool = Query(False, description="Return the continue-watching row instead"),
    limit: Optional[int] = Query(None, ge=1, le=100),
    tmdb_id: Optional[int] = Query(None, gt=0),
    media_type: Optional[MediaType] = Query(None),
    language: Optional[str] = Query(None, min_length=2, max_length=10),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
    metadata: TMDBClient = Depends(get_tmdb_client),
):
    if continue_watching:
        items = await get_continue_watching_items(
            db,
            current_user.id,
            metadata=metadata,
            language=language,
            limit=limit or DEFAULT_LIMIT,
        )
        return json_no_store(ContinueWatchingList(items=items))

    records = await watch_history_service.list_history(
        db, current_user.id, limit=limit, tmdb_id=tmdb_id, media_type=media_type
    )
    body = WatchHistoryList(items=[WatchHistoryOut.model_validate(r) for r in records])
    return json_no_store(body)


# ─────────────────────────────────────────────────────────────────────────────
# ✍️ Record progress
# ─────────────────────────────────────────────────────────────────────────────
@router.post(
    "/watch-history",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(no_store)],
    summary="Record playback progress for a movie or an episode",
)
async def post_watch_history(
    payload: WatchProgressIn,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
) -> None:
    await watch_history_service.record_progress(db, current_user.id, payload)


# ─────────────────────────────────────────────────────────────────────────────
# 🗑️ Delete
# ─────────────────────────────────────────────────────────────────────────────
@router.delete(
    "/watch-history",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(no_store)],
    summary="Delete one record, or a whole series when no episode is given",
)
async def delete_watch_history(
    payload: WatchHistoryDelete,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
) -> None:
    await watch_history_service.delete_entry(db, current_user.id, payload)


__all__ = ["router"]
