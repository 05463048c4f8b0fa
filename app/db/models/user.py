from __future__ import annotations

"""
👤 ReelNest — User (account & entitlement)
==========================================

Account row as mirrored from the auth provider, plus the entitlement fields
this service owns:

• `plan_id` / `max_screens`: current plan and its screen allowance
  (`max_screens` falls back to 1 without a plan).
• `trial_ends_at` / `trial_used`: the one-off Duo trial.

Design highlights
-----------------
• **Case-insensitive uniqueness** on email (functional index on `lower(email)`).
• **tz-aware timestamps**; Python-side UTC defaults for portability.
• Family links are one-to-one: a user owns at most one family and belongs to
  at most one family as a member.
"""

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import relationship

from app.db.base_class import Base
from app.utils.timeutils import utcnow


class User(Base):
    """Account record with plan, screen allowance and trial state."""

    __tablename__ = "users"

    # ── Identity ──────────────────────────────────────────────
    id = Column(Uuid, primary_key=True, default=uuid4)
    email = Column(String(320), nullable=False)
    full_name = Column(String(120), nullable=True)
    is_email_verified = Column(Boolean, nullable=False, server_default=text("false"), default=False)
    is_active = Column(Boolean, nullable=False, server_default=text("true"), default=True)

    # ── Entitlement ───────────────────────────────────────────
    plan_id = Column(String(32), ForeignKey("plans.id", ondelete="SET NULL"), nullable=True, index=True)
    max_screens = Column(Integer, nullable=False, server_default=text("1"), default=1)
    trial_ends_at = Column(DateTime(timezone=True), nullable=True, index=True)
    trial_used = Column(Boolean, nullable=False, server_default=text("false"), default=False)

    # ── Timestamps ────────────────────────────────────────────
    created_at = Column(DateTime(timezone=True), server_default=func.now(), default=utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint("length(trim(email)) > 0", name="ck_users_email_not_blank"),
        CheckConstraint("max_screens >= 1", name="ck_users_max_screens_positive"),
        Index("uq_users_email_lower", func.lower(email), unique=True),
    )

    # ── Relationships ─────────────────────────────────────────
    plan = relationship("Plan", back_populates="users", lazy="selectin")
    owned_family = relationship(
        "Family",
        back_populates="owner",
        uselist=False,
        passive_deletes=True,
        foreign_keys="Family.owner_id",
    )
    family_membership = relationship(
        "FamilyMember",
        back_populates="user",
        uselist=False,
        passive_deletes=True,
    )
    watch_history = relationship(
        "WatchHistory",
        back_populates="user",
        passive_deletes=True,
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<User id={self.id} email={self.email!r} plan={self.plan_id}>"
