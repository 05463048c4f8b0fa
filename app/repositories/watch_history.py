from __future__ import annotations

"""
Watch-history persistence.

`WatchHistoryRepository` is the only place that issues SQL against
`watch_history`; services and routers receive plain ORM rows from it.
Upserts go through the dialect's `ON CONFLICT` so concurrent progress reports
for the same item never trip the unique key.
"""

from datetime import datetime
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.watch_history import WatchHistory
from app.schemas.enums import MediaType
from app.utils.timeutils import ensure_utc, utcnow


class WatchHistoryRepositoryProtocol:
    async def list_for_title(self, user_id: UUID, tmdb_id: int, media_type: MediaType) -> Sequence[WatchHistory]:
        raise NotImplementedError

    async def list_recent(
        self, user_id: UUID, *, limit: int, tmdb_id: Optional[int] = None, media_type: Optional[MediaType] = None
    ) -> Sequence[WatchHistory]:
        raise NotImplementedError

    async def upsert(
        self, user_id: UUID, *, tmdb_id: int, media_type: MediaType, season_number: int, episode_number: int,
        progress: float, watched_at: Optional[datetime] = None,
    ) -> None:
        raise NotImplementedError

    async def delete_entry(
        self, user_id: UUID, *, tmdb_id: int, media_type: MediaType,
        season_number: Optional[int] = None, episode_number: Optional[int] = None,
    ) -> int:
        raise NotImplementedError


def _normalize(rows: Sequence[WatchHistory]) -> Sequence[WatchHistory]:
    for row in rows:
        row.last_watched_at = ensure_utc(row.last_watched_at)
    return rows


class SQLWatchHistoryRepository(WatchHistoryRepositoryProtocol):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_for_title(self, user_id: UUID, tmdb_id: int, media_type: MediaType) -> Sequence[WatchHistory]:
        """All records of one title for a user, most recent first."""
        result = await self.session.execute(
            select(WatchHistory)
            .where(
                WatchHistory.user_id == user_id,
                WatchHistory.tmdb_id == tmdb_id,
                WatchHistory.media_type == media_type,
            )
            .order_by(WatchHistory.last_watched_at.desc())
        )
        return _normalize(result.scalars().all())

    async def list_recent(
        self, user_id: UUID, *, limit: int, tmdb_id: Optional[int] = None, media_type: Optional[MediaType] = None
    ) -> Sequence[WatchHistory]:
        stmt = select(WatchHistory).where(WatchHistory.user_id == user_id)
        if tmdb_id is not None:
            stmt = stmt.where(WatchHistory.tmdb_id == tmdb_id)
        if media_type is not None:
            stmt = stmt.where(WatchHistory.media_type == media_type)
        stmt = stmt.order_by(WatchHistory.last_watched_at.desc()).limit(limit)
        result = await self.session.execute(stmt)
        return _normalize(result.scalars().all())

    async def upsert(
        self, user_id: UUID, *, tmdb_id: int, media_type: MediaType, season_number: int, episode_number: int,
        progress: float, watched_at: Optional[datetime] = None,
    ) -> None:
        """Insert or refresh the record for one item (does not commit)."""
        watched_at = watched_at or utcnow()
        dialect = self.session.bind.dialect.name
        insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
        stmt = insert(WatchHistory).values(
            user_id=user_id,
            tmdb_id=tmdb_id,
            media_type=media_type,
            season_number=season_number,
            episode_number=episode_number,
            progress=progress,
            last_watched_at=watched_at,
            created_at=watched_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "tmdb_id", "media_type", "season_number", "episode_number"],
            set_={"progress": stmt.excluded.progress, "last_watched_at": stmt.excluded.last_watched_at},
        )
        await self.session.execute(stmt)

    async def delete_entry(
        self, user_id: UUID, *, tmdb_id: int, media_type: MediaType,
        season_number: Optional[int] = None, episode_number: Optional[int] = None,
    ) -> int:
        """Delete one record (or every record of a series); returns rows removed."""
        stmt = delete(WatchHistory).where(
            WatchHistory.user_id == user_id,
            WatchHistory.tmdb_id == tmdb_id,
            WatchHistory.media_type == media_type,
        )
        if media_type is MediaType.MOVIE:
            stmt = stmt.where(WatchHistory.season_number == 0, WatchHistory.episode_number == 0)
        elif season_number is not None and episode_number is not None:
            stmt = stmt.where(
                WatchHistory.season_number == season_number,
                WatchHistory.episode_number == episode_number,
            )
        result = await self.session.execute(stmt)
        return int(result.rowcount or 0)


def get_watch_history_repository(session: AsyncSession) -> WatchHistoryRepositoryProtocol:
    return SQLWatchHistoryRepository(session)
