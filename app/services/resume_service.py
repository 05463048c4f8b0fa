from __future__ import annotations

"""
ReelNest — Resume point resolution for TV series
================================================

Where should "Play" start for a series the user has partly watched?

`resolve_resume_episode()` is pure: it works on already-loaded watch records
plus (optionally) the series' season layout, and never touches I/O.
`compute_resume_episode()` loads the records, decides whether season data is
needed at all, fetches it from TMDB when it is, and delegates.

Rules
-----
1. No history → S1E1.
2. The most recently watched in-progress episode (10 ≤ progress < 90) wins
   and is returned with its own progress.
3. Otherwise start after the furthest completed episode (progress ≥ 90),
   skipping episodes already completed and rolling over season boundaries.
4. Anything that cannot be placed (unknown season, end of the last season,
   walk bound exhausted) restarts the series at S1E1.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.repositories.watch_history import get_watch_history_repository
from app.schemas.enums import MediaType
from app.services.tmdb_client import SeasonInfo, TMDBClient
from app.services.watch_constants import is_completed, is_in_progress

logger = logging.getLogger(__name__)

MAX_RESUME_WALK_STEPS = 200


class EpisodeRecord(Protocol):
    season_number: int
    episode_number: int
    progress: float
    last_watched_at: datetime


@dataclass(frozen=True)
class ResumePoint:
    season: int
    episode: int
    progress: float = 0.0

    @property
    def is_series_start(self) -> bool:
        return self.season == 1 and self.episode == 1 and self.progress == 0


SERIES_START = ResumePoint(1, 1, 0.0)


# ─────────────────────────────────────────────────────────────
# Pure resolver
# ─────────────────────────────────────────────────────────────
def resolve_resume_episode(
    records: Sequence[EpisodeRecord],
    seasons: Optional[Sequence[SeasonInfo]],
) -> ResumePoint:
    """
    Resolve the resume point from pre-loaded data.

    Parameters
    ----------
    records : Sequence[EpisodeRecord]
        Watch records of one series (any order).
    seasons : Sequence[SeasonInfo] | None
        Regular seasons of the series. `None` or empty skips boundary checks
        and returns the episode right after the furthest completed one.

    Returns
    -------
    ResumePoint
    """
    if not records:
        return SERIES_START

    # ── [Step 1] In-progress wins (most recent; ties keep input order) ──
    in_progress = sorted(
        (r for r in records if is_in_progress(r.progress)),
        key=lambda r: r.last_watched_at,
        reverse=True,
    )
    if in_progress:
        current = in_progress[0]
        return ResumePoint(current.season_number, current.episode_number, current.progress)

    # ── [Step 2] Furthest completed episode ─────────────────────
    completed = [r for r in records if is_completed(r.progress)]
    if not completed:
        return SERIES_START
    furthest = max(completed, key=lambda r: (r.season_number, r.episode_number))

    season, episode = furthest.season_number, furthest.episode_number + 1
    if not seasons:
        return ResumePoint(season, episode, 0.0)

    # ── [Step 3] Walk forward over the known season layout ──────
    layout = {s.season_number: s.episode_count for s in seasons}
    watched: dict[tuple[int, int], EpisodeRecord] = {}
    for r in records:
        watched.setdefault((r.season_number, r.episode_number), r)

    for _ in range(MAX_RESUME_WALK_STEPS):
        episode_count = layout.get(season)
        if episode_count is None:
            return SERIES_START

        if episode > episode_count:
            if layout.get(season + 1, 0) > 0:
                season, episode = season + 1, 1
                continue
            return SERIES_START

        existing = watched.get((season, episode))
        if existing is None or not is_completed(existing.progress):
            return ResumePoint(season, episode, existing.progress if existing else 0.0)
        episode += 1

    logger.warning(
        "Resume walk gave up after %s steps (stopped at S%sE%s); restarting series",
        MAX_RESUME_WALK_STEPS, season, episode,
    )
    return SERIES_START


def needs_season_layout(records: Sequence[EpisodeRecord]) -> bool:
    """Season data only matters when there is history and nothing is in progress."""
    return bool(records) and not any(is_in_progress(r.progress) for r in records)


# ─────────────────────────────────────────────────────────────
# Orchestrator
# ─────────────────────────────────────────────────────────────
async def compute_resume_episode(
    session: AsyncSession,
    user_id: UUID,
    tmdb_id: int,
    language: Optional[str] = None,
    *,
    metadata: TMDBClient,
) -> ResumePoint:
    """
    Load the user's records for a series and resolve where to resume.

    Steps
    -----
    - **[Step 1]** One query: the series' records, most recent first.
    - **[Step 2]** Short-circuit (no TMDB call) when there is no history or
      something is in progress.
    - **[Step 3]** Otherwise fetch the season layout; a metadata failure
      resolves without it.
    """
    repo = get_watch_history_repository(session)
    records = await repo.list_for_title(user_id, tmdb_id, MediaType.TV)

    if not needs_season_layout(records):
        return resolve_resume_episode(records, None)

    seasons = await metadata.get_seasons(tmdb_id, language or settings.SITE_LANGUAGE)
    return resolve_resume_episode(records, seasons)


def playback_path(media_type: MediaType, tmdb_id: int, point: Optional[ResumePoint] = None) -> str:
    """Watch page path: `/watch/movie/{id}` or `/watch/tv/{id}/{season}/{episode}`."""
    base = settings.WATCH_BASE_PATH
    if media_type is MediaType.MOVIE or point is None:
        return f"{base}/{media_type.value}/{tmdb_id}"
    return f"{base}/tv/{tmdb_id}/{point.season}/{point.episode}"


__all__ = [
    "MAX_RESUME_WALK_STEPS",
    "ResumePoint",
    "SERIES_START",
    "resolve_resume_episode",
    "needs_season_layout",
    "compute_resume_episode",
    "playback_path",
]
