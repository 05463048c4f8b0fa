from __future__ import annotations

"""
"Continue watching" row.

One item per movie still in progress and one item per series the user has
really started (some episode ≥ 10%), placed at that series' resume point.
Fully watched series drop out. Items are ordered by the most recent activity.
"""

import asyncio
import logging
from collections import defaultdict
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.db.models.watch_history import WatchHistory
from app.repositories.watch_history import get_watch_history_repository
from app.schemas.enums import MediaType
from app.schemas.watch import ContinueWatchingItem
from app.services.resume_service import needs_season_layout, resolve_resume_episode
from app.services.tmdb_client import TMDBClient
from app.services.watch_constants import MINIMUM_PROGRESS_THRESHOLD, is_completed, is_in_progress

logger = logging.getLogger(__name__)

HISTORY_SCAN_LIMIT = 100
DEFAULT_LIMIT = 10


def _display_title(details: Optional[dict], tmdb_id: int) -> str:
    if details:
        return details.get("title") or details.get("name") or f"ID: {tmdb_id}"
    return f"ID: {tmdb_id}"


async def _movie_item(record: WatchHistory, metadata: TMDBClient, language: str) -> ContinueWatchingItem:
    details = await metadata.get_media_details(record.tmdb_id, MediaType.MOVIE, language)
    return ContinueWatchingItem(
        id=record.id,
        tmdb_id=record.tmdb_id,
        media_type=MediaType.MOVIE,
        season_number=0,
        episode_number=0,
        progress=record.progress,
        last_watched_at=record.last_watched_at,
        title=_display_title(details, record.tmdb_id),
        backdrop_path=(details or {}).get("backdrop_path"),
    )


async def _series_item(
    tmdb_id: int, episodes: Sequence[WatchHistory], metadata: TMDBClient, language: str
) -> Optional[ContinueWatchingItem]:
    details = await metadata.get_media_details(tmdb_id, MediaType.TV, language)
    if details is None:
        return None

    seasons = await metadata.get_seasons(tmdb_id, language) if needs_season_layout(episodes) else None
    point = resolve_resume_episode(episodes, seasons)

    if point.is_series_start and any(is_completed(e.progress) for e in episodes):
        first = next((e for e in episodes if e.season_number == 1 and e.episode_number == 1), None)
        if first is not None and is_completed(first.progress):
            return None

    latest = max(episodes, key=lambda e: e.last_watched_at)
    return ContinueWatchingItem(
        id=latest.id,
        tmdb_id=tmdb_id,
        media_type=MediaType.TV,
        season_number=point.season,
        episode_number=point.episode,
        progress=point.progress,
        last_watched_at=latest.last_watched_at,
        title=_display_title(details, tmdb_id),
        backdrop_path=details.get("backdrop_path"),
    )


async def get_continue_watching_items(
    session: AsyncSession,
    user_id: UUID,
    *,
    metadata: TMDBClient,
    language: Optional[str] = None,
    limit: int = DEFAULT_LIMIT,
) -> list[ContinueWatchingItem]:
    """
    Build the continue-watching row for a user.

    Steps
    -----
    - **[Step 1]** Load the last `HISTORY_SCAN_LIMIT` records (one query).
    - **[Step 2]** Movies in progress become items directly.
    - **[Step 3]** Series are grouped per title, kept when some episode
      reached the minimum threshold, and resolved with the shared resolver
      (season layout fetched only when nothing is in progress).
    - **[Step 4]** Enrich concurrently, drop failures, sort by recency, cut to `limit`.
    """
    language = language or settings.SITE_LANGUAGE
    repo = get_watch_history_repository(session)
    history = await repo.list_recent(user_id, limit=HISTORY_SCAN_LIMIT)
    if not history:
        return []

    movies = [r for r in history if r.media_type is MediaType.MOVIE and is_in_progress(r.progress)]

    series: dict[int, list[WatchHistory]] = defaultdict(list)
    for record in history:
        if record.media_type is MediaType.TV:
            series[record.tmdb_id].append(record)
    started = {
        tmdb_id: episodes
        for tmdb_id, episodes in series.items()
        if any(e.progress >= MINIMUM_PROGRESS_THRESHOLD for e in episodes)
    }

    tasks = [_movie_item(r, metadata, language) for r in movies]
    tasks += [_series_item(tmdb_id, eps, metadata, language) for tmdb_id, eps in started.items()]
    results = await asyncio.gather(*tasks, return_exceptions=True)

    items: list[ContinueWatchingItem] = []
    for result in results:
        if isinstance(result, BaseException):
            logger.warning("Continue-watching item skipped: %r", result)
        elif result is not None:
            items.append(result)

    items.sort(key=lambda item: item.last_watched_at, reverse=True)
    return items[:limit]


__all__ = ["HISTORY_SCAN_LIMIT", "get_continue_watching_items"]
