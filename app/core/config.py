# app/core/config.py
from __future__ import annotations

"""
# ReelNest — Centralized Configuration (Pydantic v2)

Single `settings` object with strongly-typed, environment-driven config.

## Goals
- Safe defaults for local/dev; explicit where prod needs secrets.
- Robust URL normalization and CSV → list helpers.
- Optional external systems (TMDB, Redis) so imports never crash in dev.

## Usage
    from app.core.config import settings
"""

import logging
from typing import List, Optional, Literal

from dotenv import load_dotenv
from pydantic import Field, SecretStr, AnyHttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

log = logging.getLogger(__name__)
load_dotenv()  # harmless in prod; convenient in dev


# ─────────────────────────────────────────────────────────────
# Small helpers
# ─────────────────────────────────────────────────────────────
def _split_csv(v: str | None) -> list[str]:
    """Split a comma-separated string into a trimmed list (empty-safe)."""
    if not v:
        return []
    return [s.strip() for s in str(v).split(",") if s and s.strip()]


def _normalize_url_like(v: str | None, *, require_scheme: bool = True) -> str:
    """Normalize to a string URL without trailing slash."""
    s = (v or "").strip()
    if not s:
        return ""
    if require_scheme and not (s.startswith("http://") or s.startswith("https://")):
        s = "https://" + s
    return s.rstrip("/")


# ─────────────────────────────────────────────────────────────
# Settings
# ─────────────────────────────────────────────────────────────
class Settings(BaseSettings):
    """
    Global application settings sourced from environment.

    Security:
        - Explicit secret for JWT verification.
        - `CRON_SECRET` guards the maintenance endpoints.

    Notes:
        - `DATABASE_URL_OVERRIDE` wins over the POSTGRES_* parts (tests, SQLite).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # don't crash on unknown keys
    )

    # ── App meta ──────────────────────────────────────────────
    PROJECT_NAME: str = "ReelNest API"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    ENV: Literal["development", "staging", "production"] = "development"
    ENABLE_DOCS: bool = True

    # ── Security / JWT ────────────────────────────────────────
    JWT_SECRET_KEY: SecretStr = Field(...)
    JWT_ALGORITHM: Literal["HS256", "HS384", "HS512"] = "HS256"
    JWT_ISSUER: Optional[str] = None
    JWT_AUDIENCE: Optional[str] = None
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(60, ge=5, le=24 * 60)

    # ── Redis ─────────────────────────────────────────────────
    REDIS_URL: str = "redis://localhost:6379/0"

    # ── Database (PostgreSQL) ─────────────────────────────────
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: SecretStr = Field(...)
    POSTGRES_DB: str = "reelnest"
    DATABASE_URL_OVERRIDE: Optional[str] = None

    # ── CORS ──────────────────────────────────────────────────
    BACKEND_CORS_ORIGINS: List[AnyHttpUrl] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"]
    )
    FRONTEND_ORIGINS: Optional[str] = None  # CSV

    # ── Title metadata (TMDB) ─────────────────────────────────
    TMDB_API_URL: str = "https://api.themoviedb.org/3"
    TMDB_API_KEY: Optional[SecretStr] = None
    SITE_LANGUAGE: str = "en-US"
    TMDB_TIMEOUT_SECONDS: float = Field(5.0, gt=0, le=60)
    TMDB_CACHE_TTL_SECONDS: int = Field(60 * 60, ge=0, le=7 * 24 * 60 * 60)

    # ── Watch page ────────────────────────────────────────────
    WATCH_BASE_PATH: str = "/watch"

    # ── Family plan ───────────────────────────────────────────
    FAMILY_INVITE_TTL_DAYS: int = Field(7, ge=1, le=90)
    FAMILY_MAX_PENDING_INVITES: int = Field(5, ge=1, le=50)

    # ── Maintenance (cron + in-process scheduler) ─────────────
    CRON_SECRET: Optional[SecretStr] = None
    MAINTENANCE_SCHEDULER: bool = False
    TRIAL_EXPIRY_INTERVAL_MINUTES: int = Field(60, ge=1, le=24 * 60)
    INVITE_EXPIRY_INTERVAL_MINUTES: int = Field(60, ge=1, le=24 * 60)

    # ── Validators / normalizers ──────────────────────────────
    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def _assemble_cors_origins(cls, v: str | List[str]):
        if isinstance(v, str):
            return _split_csv(v)
        return v

    @field_validator("FRONTEND_ORIGINS", mode="before")
    @classmethod
    def _normalize_frontend_csv(cls, v):
        return None if v is None else ",".join(_split_csv(str(v)))

    @field_validator("TMDB_API_URL", mode="before")
    @classmethod
    def _normalize_tmdb_url(cls, v) -> str:
        """Normalize to a **string** URL without trailing slash."""
        return _normalize_url_like(str(v or "https://api.themoviedb.org/3"))

    @field_validator("WATCH_BASE_PATH", mode="before")
    @classmethod
    def _normalize_watch_path(cls, v) -> str:
        s = "/" + str(v or "/watch").strip().strip("/")
        return s if s != "/" else "/watch"

    # ── Derived / convenience properties ─────────────────────
    @property
    def is_production(self) -> bool:
        return self.ENV.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.ENV.lower() == "development"

    @property
    def DATABASE_URL(self) -> str:
        """Sync DSN."""
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD.get_secret_value()}"
            f"@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def ASYNC_DATABASE_URL(self) -> str:
        """Async SQLAlchemy DSN (override first, else asyncpg)."""
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")

    @property
    def frontend_origins_list(self) -> List[str]:
        """
        Preferred CORS allowlist:
        Priority → FRONTEND_ORIGINS (CSV) → BACKEND_CORS_ORIGINS (typed list).
        """
        if self.FRONTEND_ORIGINS:
            return _split_csv(self.FRONTEND_ORIGINS)
        return [str(u).rstrip("/") for u in (self.BACKEND_CORS_ORIGINS or [])]

    @property
    def tmdb_api_key(self) -> str:
        return self.TMDB_API_KEY.get_secret_value() if self.TMDB_API_KEY else ""

    @property
    def cron_secret(self) -> str:
        return self.CRON_SECRET.get_secret_value() if self.CRON_SECRET else ""


# Singleton instance
settings = Settings()
