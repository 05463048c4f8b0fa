
# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ ReelNest · User API (Resume & playback entry)                            ║
# ╠──────────────────────────────────────────────────────────────────────────╣
# ║  - GET /watch/{media_type}/{tmdb_id}/resume → Resume point + path        ║
# ║  - GET /watch/tv/{tmdb_id}                  → 307 to the resume episode  ║
# ╚══════════════════════════════════════════════════════════════════════════╝
"""
Where should playback pick up?

Movies resume at their own record. Series go through the resume resolver;
the bare series URL redirects to the resolved episode for callers with
streaming access (own plan/trial, or a family whose owner has one).
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.http_utils import NO_STORE_HEADERS, json_no_store
from app.core.exceptions import SubscriptionRequiredError
from app.core.security import get_current_user
from app.db.models.user import User
from app.db.session import get_async_db
from app.repositories.watch_history import get_watch_history_repository
from app.schemas.enums import MediaType
from app.schemas.watch import ResumePointOut
from app.services.resume_service import compute_resume_episode, playback_path
from app.services.tmdb_client import TMDBClient, get_tmdb_client
from app.services.trial_service import has_streaming_access

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Playback"])


@router.get(
    "/watch/{media_type}/{tmdb_id}/resume",
    response_model=ResumePointOut,
    summary="Resume point for a movie or a series",
)
async def get_resume_point(
    media_type: MediaType,
    tmdb_id: int = Path(..., gt=0),
    language: Optional[str] = Query(None, min_length=2, max_length=10),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
    metadata: TMDBClient = Depends(get_tmdb_client),
):
    if media_type is MediaType.MOVIE:
        records = await get_watch_history_repository(db).list_for_title(current_user.id, tmdb_id, MediaType.MOVIE)
        progress = records[0].progress if records else 0.0
        body = ResumePointOut(
            tmdb_id=tmdb_id,
            media_type=media_type,
            season=0,
            episode=0,
            progress=progress,
            path=playback_path(media_type, tmdb_id),
        )
        return json_no_store(body)

    point = await compute_resume_episode(db, current_user.id, tmdb_id, language, metadata=metadata)
    body = ResumePointOut(
        tmdb_id=tmdb_id,
        media_type=media_type,
        season=point.season,
        episode=point.episode,
        progress=point.progress,
        path=playback_path(media_type, tmdb_id, point),
    )
    return json_no_store(body)


@router.get(
    "/watch/tv/{tmdb_id}",
    status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    response_class=RedirectResponse,
    summary="Redirect a series to the episode to resume",
)
async def redirect_to_resume_episode(
    tmdb_id: int = Path(..., gt=0),
    language: Optional[str] = Query(None, min_length=2, max_length=10),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
    metadata: TMDBClient = Depends(get_tmdb_client),
) -> RedirectResponse:
    """
    Steps:
    1) Require streaming access (403 `subscription_required` otherwise).
    2) Resolve the resume episode; S1E1 when there is no history.
    3) 307 to the episode's watch path.
    """
    if not await has_streaming_access(db, current_user):
        raise SubscriptionRequiredError()

    point = await compute_resume_episode(db, current_user.id, tmdb_id, language, metadata=metadata)
    target = playback_path(MediaType.TV, tmdb_id, point)
    logger.debug("Series %s resumes at S%sE%s for %s", tmdb_id, point.season, point.episode, current_user.id)
    return RedirectResponse(
        url=target,
        status_code=status.HTTP_307_TEMPORARY_REDIRECT,
        headers=dict(NO_STORE_HEADERS),
    )


__all__ = ["router"]
