from __future__ import annotations

"""Watch-history writes and listings on top of the repository."""

import logging
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import WatchRecordNotFoundError
from app.db.models.watch_history import WatchHistory
from app.repositories.watch_history import get_watch_history_repository
from app.schemas.enums import MediaType
from app.schemas.watch import WatchHistoryDelete, WatchProgressIn

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 100


def clamp_progress(progress: float) -> float:
    return min(max(float(progress), 0.0), 100.0)


def clamp_limit(limit: Optional[int]) -> int:
    if limit is None:
        return DEFAULT_LIST_LIMIT
    return min(max(int(limit), 1), MAX_LIST_LIMIT)


async def record_progress(session: AsyncSession, user_id: UUID, payload: WatchProgressIn) -> None:
    """Upsert the record for one movie/episode and stamp it as just watched."""
    is_movie = payload.media_type is MediaType.MOVIE
    repo = get_watch_history_repository(session)
    try:
        await repo.upsert(
            user_id,
            tmdb_id=payload.tmdb_id,
            media_type=payload.media_type,
            season_number=0 if is_movie else int(payload.season_number),
            episode_number=0 if is_movie else int(payload.episode_number),
            progress=clamp_progress(payload.progress),
        )
        await session.commit()
    except Exception:
        await session.rollback()
        raise


async def list_history(
    session: AsyncSession,
    user_id: UUID,
    *,
    limit: Optional[int] = None,
    tmdb_id: Optional[int] = None,
    media_type: Optional[MediaType] = None,
) -> Sequence[WatchHistory]:
    repo = get_watch_history_repository(session)
    return await repo.list_recent(user_id, limit=clamp_limit(limit), tmdb_id=tmdb_id, media_type=media_type)


async def delete_entry(session: AsyncSession, user_id: UUID, payload: WatchHistoryDelete) -> int:
    """
    Remove one record, or every record of a series when no episode is given.

    Raises
    ------
    WatchRecordNotFoundError
        A specific movie/episode record does not exist.
    """
    repo = get_watch_history_repository(session)
    whole_series = payload.media_type is MediaType.TV and payload.season_number is None
    try:
        removed = await repo.delete_entry(
            user_id,
            tmdb_id=payload.tmdb_id,
            media_type=payload.media_type,
            season_number=payload.season_number,
            episode_number=payload.episode_number,
        )
        if removed == 0 and not whole_series:
            raise WatchRecordNotFoundError()
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    logger.debug("Removed %s watch record(s) of %s:%s for %s", removed, payload.media_type.value, payload.tmdb_id, user_id)
    return removed
