from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.schemas.enums import MediaType


class WatchProgressIn(BaseModel):
    """Progress report from the player.

    Movies carry no season/episode (stored as 0/0); episodes need both ≥ 1.
    """

    tmdb_id: int = Field(..., gt=0)
    media_type: MediaType
    season_number: Optional[int] = Field(None, ge=1)
    episode_number: Optional[int] = Field(None, ge=1)
    progress: float = Field(..., ge=0, le=100)

    @model_validator(mode="after")
    def _check_episode_scope(self) -> "WatchProgressIn":
        if self.media_type is MediaType.MOVIE:
            if self.season_number is not None or self.episode_number is not None:
                raise ValueError("movies must not include season_number/episode_number")
        elif self.season_number is None or self.episode_number is None:
            raise ValueError("tv entries require season_number and episode_number")
        return self


class WatchHistoryDelete(BaseModel):
    """Delete one record, or a whole series when season/episode are omitted."""

    tmdb_id: int = Field(..., gt=0)
    media_type: MediaType
    season_number: Optional[int] = Field(None, ge=1)
    episode_number: Optional[int] = Field(None, ge=1)

    @model_validator(mode="after")
    def _check_pair(self) -> "WatchHistoryDelete":
        if (self.season_number is None) != (self.episode_number is None):
            raise ValueError("season_number and episode_number go together")
        if self.media_type is MediaType.MOVIE and self.season_number is not None:
            raise ValueError("movies must not include season_number/episode_number")
        return self


class WatchHistoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tmdb_id: int
    media_type: MediaType
    season_number: int
    episode_number: int
    progress: float
    last_watched_at: datetime


class WatchHistoryList(BaseModel):
    items: List[WatchHistoryOut]


class ContinueWatchingItem(BaseModel):
    id: UUID
    tmdb_id: int
    media_type: MediaType
    season_number: int
    episode_number: int
    progress: float
    last_watched_at: datetime
    title: str
    backdrop_path: Optional[str] = None


class ContinueWatchingList(BaseModel):
    items: List[ContinueWatchingItem]


class ResumePointOut(BaseModel):
    tmdb_id: int
    media_type: MediaType
    season: int
    episode: int
    progress: float
    path: str = Field(..., description="Watch page path for the resolved item")
