from __future__ import annotations

"""In-memory stand-in for `TMDBClient` with call counters."""

from typing import Dict, List, Optional, Tuple

from app.schemas.enums import MediaType
from app.services.tmdb_client import SeasonInfo


class StubTMDBClient:
    def __init__(self) -> None:
        self.details: Dict[Tuple[str, int], dict] = {}
        self.seasons: Dict[int, List[SeasonInfo]] = {}
        self.failing: set[int] = set()
        self.details_calls: List[Tuple[str, int]] = []
        self.season_calls: List[int] = []

    # ── setup helpers ───────────────────────────────────────
    def add_movie(self, tmdb_id: int, title: str, backdrop: Optional[str] = None) -> None:
        self.details[(MediaType.MOVIE.value, tmdb_id)] = {"id": tmdb_id, "title": title, "backdrop_path": backdrop}

    def add_series(self, tmdb_id: int, name: str, layout: Dict[int, int], backdrop: Optional[str] = None) -> None:
        self.details[(MediaType.TV.value, tmdb_id)] = {"id": tmdb_id, "name": name, "backdrop_path": backdrop}
        self.seasons[tmdb_id] = [SeasonInfo(season_number=s, episode_count=c) for s, c in sorted(layout.items())]

    # ── TMDBClient surface ──────────────────────────────────
    async def get_media_details(self, tmdb_id: int, media_type, language: Optional[str] = None) -> Optional[dict]:
        kind = MediaType(media_type).value
        self.details_calls.append((kind, tmdb_id))
        if tmdb_id in self.failing:
            raise RuntimeError(f"metadata lookup exploded for {tmdb_id}")
        return self.details.get((kind, tmdb_id))

    async def get_seasons(self, tmdb_id: int, language: Optional[str] = None) -> Optional[List[SeasonInfo]]:
        self.season_calls.append(tmdb_id)
        return self.seasons.get(tmdb_id)
