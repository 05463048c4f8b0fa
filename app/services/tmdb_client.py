from __future__ import annotations

"""
ReelNest — TMDB title-metadata client
=====================================

Thin async client over the TMDB v3 REST API (`httpx`).

• `get_media_details()` returns the raw details document for a movie or a
  series, cached in Redis (`tmdb:details:{type}:{id}:{lang}`) when Redis is up.
• `get_seasons()` returns the regular seasons of a series (season 0,
  "Specials", dropped) as `SeasonInfo` rows, always fetched live.

Both degrade to `None` on any failure (timeout, non-2xx, network error,
malformed body): callers treat missing metadata as "unknown" rather than as
an error.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx
from redis.exceptions import RedisError

from app.core.config import settings
from app.core.redis_client import redis_wrapper
from app.schemas.enums import MediaType

logger = logging.getLogger(__name__)

CACHE_PREFIX = "tmdb:details"


@dataclass(frozen=True)
class SeasonInfo:
    season_number: int
    episode_count: int


def parse_seasons(payload: Any) -> Optional[list[SeasonInfo]]:
    """Extract regular seasons from a TMDB series document; `None` if malformed."""
    if not isinstance(payload, dict):
        return None
    raw = payload.get("seasons") or []
    if not isinstance(raw, list):
        return None
    seasons: list[SeasonInfo] = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        try:
            number = int(entry.get("season_number"))
            count = int(entry.get("episode_count") or 0)
        except (TypeError, ValueError):
            continue
        if number > 0:
            seasons.append(SeasonInfo(season_number=number, episode_count=count))
    return seasons


class TMDBClient:
    """Client for the TMDB title-metadata API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        cache_ttl: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.TMDB_API_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.tmdb_api_key
        self.timeout = timeout or settings.TMDB_TIMEOUT_SECONDS
        self.cache_ttl = settings.TMDB_CACHE_TTL_SECONDS if cache_ttl is None else cache_ttl
        self._transport = transport

    async def _fetch(self, path: str, language: str) -> Optional[dict]:
        params = {"api_key": self.api_key, "language": language}
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.get(f"{self.base_url}{path}", params=params)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            logger.warning("TMDB %s answered %s", path, e.response.status_code)
            return None
        except httpx.HTTPError as e:
            logger.warning("TMDB %s unreachable: %r", path, e)
            return None
        except ValueError:
            logger.warning("TMDB %s returned a non-JSON body", path)
            return None
        return data if isinstance(data, dict) else None

    async def get_media_details(
        self, tmdb_id: int, media_type: MediaType | str, language: Optional[str] = None
    ) -> Optional[dict]:
        """Details document for a title, served from Redis when cached."""
        kind = MediaType(media_type).value
        language = language or settings.SITE_LANGUAGE
        key = f"{CACHE_PREFIX}:{kind}:{tmdb_id}:{language}"

        if redis_wrapper.connected:
            try:
                cached = await redis_wrapper.json_get(key)
                if isinstance(cached, dict):
                    return cached
            except RedisError:
                logger.debug("TMDB cache read failed for %s", key, exc_info=True)

        details = await self._fetch(f"/{kind}/{tmdb_id}", language)
        if details is not None and redis_wrapper.connected and self.cache_ttl:
            try:
                await redis_wrapper.json_set(key, details, ttl_seconds=self.cache_ttl)
            except RedisError:
                logger.debug("TMDB cache write failed for %s", key, exc_info=True)
        return details

    async def get_seasons(self, tmdb_id: int, language: Optional[str] = None) -> Optional[list[SeasonInfo]]:
        """Regular seasons of a series, or `None` when metadata is unavailable."""
        payload = await self._fetch(f"/tv/{tmdb_id}", language or settings.SITE_LANGUAGE)
        if payload is None:
            return None
        seasons = parse_seasons(payload)
        if seasons is None:
            logger.warning("TMDB series %s has a malformed seasons list", tmdb_id)
        return seasons


def get_tmdb_client() -> TMDBClient:
    """FastAPI dependency (overridden in tests)."""
    return TMDBClient()


__all__ = ["SeasonInfo", "TMDBClient", "parse_seasons", "get_tmdb_client"]
