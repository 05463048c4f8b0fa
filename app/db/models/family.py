from __future__ import annotations

"""
👨‍👩‍👧 ReelNest — Family sharing (families, members, invites)
============================================================

• **Family**: one per owner (`owner_id` unique). `max_members` counts the
  owner, so a Duo family (2) has room for one member.
• **FamilyMember**: a user belongs to at most one family (`user_id` unique).
• **FamilyInvite**: single-use token, optionally bound to an email, with a
  lifecycle `pending → accepted | revoked | expired`.

Capacity invariant (enforced in `app.services.family_service` under row
locks): owner + members + pending non-expired invites ≤ `max_members`.
"""

import secrets
from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import relationship

from app.db.base_class import Base
from app.schemas.enums import InviteStatus
from app.utils.timeutils import utcnow


def new_invite_token() -> str:
    return secrets.token_urlsafe(24)


class Family(Base):
    __tablename__ = "families"

    id = Column(Uuid, primary_key=True, default=uuid4)
    owner_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    name = Column(String(120), nullable=False)
    max_members = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), default=utcnow)

    __table_args__ = (
        CheckConstraint("max_members >= 1", name="ck_families_max_members_positive"),
    )

    owner = relationship("User", back_populates="owned_family", foreign_keys=[owner_id])
    members = relationship(
        "FamilyMember",
        back_populates="family",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="FamilyMember.joined_at",
    )
    invites = relationship(
        "FamilyInvite",
        back_populates="family",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="FamilyInvite.created_at",
    )


class FamilyMember(Base):
    __tablename__ = "family_members"

    id = Column(Uuid, primary_key=True, default=uuid4)
    family_id = Column(Uuid, ForeignKey("families.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    joined_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), default=utcnow)

    __table_args__ = (
        UniqueConstraint("family_id", "user_id", name="uq_family_members_family_user"),
    )

    family = relationship("Family", back_populates="members")
    user = relationship("User", back_populates="family_membership", lazy="selectin")


class FamilyInvite(Base):
    __tablename__ = "family_invites"

    id = Column(Uuid, primary_key=True, default=uuid4)
    family_id = Column(Uuid, ForeignKey("families.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(String(64), nullable=False, unique=True, default=new_invite_token)
    email = Column(String(320), nullable=True, doc="NULL for open (link) invites")
    status = Column(
        Enum(InviteStatus, name="invite_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=InviteStatus.PENDING,
    )
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    used_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), default=utcnow)

    __table_args__ = (
        Index("ix_family_invites_status_expires", "status", "expires_at"),
    )

    family = relationship("Family", back_populates="invites")
