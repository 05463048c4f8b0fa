from __future__ import annotations

"""
⏯️ ReelNest — WatchHistory (per-user, per-episode progress)
===========================================================

One row per `(user, title, media type, season, episode)`:
• **Movies**   → `season_number = episode_number = 0`
• **Episodes** → both ≥ 1

`progress` is a 0–100 percentage of the item watched; `last_watched_at` is the
recency key every resume decision sorts on.
"""

from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    UniqueConstraint,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import relationship

from app.db.base_class import Base
from app.schemas.enums import MediaType
from app.utils.timeutils import utcnow


class WatchHistory(Base):
    """Watch record for a movie or a single TV episode."""

    __tablename__ = "watch_history"

    id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    tmdb_id = Column(Integer, nullable=False)
    media_type = Column(
        Enum(MediaType, name="media_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    season_number = Column(Integer, nullable=False, server_default=text("0"), default=0)
    episode_number = Column(Integer, nullable=False, server_default=text("0"), default=0)

    progress = Column(Float, nullable=False, server_default=text("0"), default=0.0, doc="Percent watched, 0–100")
    last_watched_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), default=utcnow)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), default=utcnow)

    __table_args__ = (
        UniqueConstraint(
            "user_id", "tmdb_id", "media_type", "season_number", "episode_number",
            name="uq_watch_history_user_item",
        ),
        CheckConstraint("tmdb_id > 0", name="ck_watch_history_tmdb_positive"),
        CheckConstraint("progress >= 0 AND progress <= 100", name="ck_watch_history_progress_range"),
        CheckConstraint("season_number >= 0 AND episode_number >= 0", name="ck_watch_history_numbers_nonneg"),
        Index("ix_watch_history_user_recent", "user_id", "last_watched_at"),
        Index("ix_watch_history_user_title", "user_id", "tmdb_id", "media_type"),
    )

    user = relationship("User", back_populates="watch_history")

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<WatchHistory user={self.user_id} {self.media_type.value}:{self.tmdb_id} "
            f"S{self.season_number}E{self.episode_number} {self.progress:.0f}%>"
        )
