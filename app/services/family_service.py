from __future__ import annotations

"""
ReelNest — Family lifecycle
===========================

Create families, issue/accept/revoke invites, remove or lose members, and
expire stale invites, while keeping

    owner + members + pending non-expired invites ≤ family.max_members

true under concurrency. Every capacity-affecting write runs in one
transaction that first takes row locks (`SELECT … FOR UPDATE`): the owner's
`users` row for invite creation (so lazy family creation and the capacity
check are serialized per owner) and the `families` row for acceptance.

All operations take the request's `AsyncSession`, commit on success, roll
back on failure and raise `AppException` subclasses that the API renders as
problem+json.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Sequence
from uuid import UUID

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.core.exceptions import (
    ActivePlanError,
    AlreadyMemberError,
    FamilyCapacityError,
    FamilyExistsError,
    FamilyFullError,
    InvalidInviteEmailError,
    InviteAlreadyUsedError,
    InviteEmailMismatchError,
    InviteExpiredError,
    InviteNotFoundError,
    MemberNotFoundError,
    MemberOfOtherFamilyError,
    NotFamilyMemberError,
    NotFamilyOwnerError,
    OwnerCannotAcceptError,
    OwnerOfOtherFamilyError,
    PendingInviteLimitError,
    PlanHasNoFamilyError,
)
from app.db.models.family import Family, FamilyInvite, FamilyMember
from app.db.models.user import User
from app.db.session import async_session_maker
from app.schemas.enums import InviteStatus
from app.services.family_slots import (
    SlotUsage,
    can_own_family,
    has_available_slots,
    slot_usage,
    total_members,
)
from app.services.trial_service import is_trial_active
from app.utils.timeutils import ensure_utc, utcnow

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────
# Query helpers
# ─────────────────────────────────────────────────────────────
async def _lock_user(session: AsyncSession, user_id: UUID) -> User:
    return (
        await session.execute(
            select(User)
            .where(User.id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
    ).scalar_one()


async def _owned_family(session: AsyncSession, owner_id: UUID, *, lock: bool = False) -> Optional[Family]:
    stmt = select(Family).where(Family.owner_id == owner_id)
    if lock:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    return (await session.execute(stmt)).scalar_one_or_none()


async def _membership(session: AsyncSession, user_id: UUID) -> Optional[FamilyMember]:
    return (
        await session.execute(select(FamilyMember).where(FamilyMember.user_id == user_id))
    ).scalar_one_or_none()


async def _count_members(session: AsyncSession, family_id: UUID) -> int:
    return int(
        (
            await session.execute(
                select(func.count()).select_from(FamilyMember).where(FamilyMember.family_id == family_id)
            )
        ).scalar_one()
    )


def _pending_filter(family_id: UUID, now: datetime):
    return (
        FamilyInvite.family_id == family_id,
        FamilyInvite.status == InviteStatus.PENDING,
        FamilyInvite.expires_at > now,
    )


async def _count_pending(session: AsyncSession, family_id: UUID, now: datetime) -> int:
    return int(
        (
            await session.execute(
                select(func.count()).select_from(FamilyInvite).where(*_pending_filter(family_id, now))
            )
        ).scalar_one()
    )


def _family_name(user: User) -> str:
    return f"{user.full_name or 'User'}'s family"


def _normalize_invite_email(email: Optional[str]) -> Optional[str]:
    if email is None or not email.strip():
        return None
    try:
        return validate_email(email.strip(), check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise InvalidInviteEmailError(details={"email": str(e)}) from e


# ─────────────────────────────────────────────────────────────
# Family
# ─────────────────────────────────────────────────────────────
async def create_family(session: AsyncSession, user: User) -> Family:
    """Explicitly create the caller's family (multi-screen plans only)."""
    try:
        owner = await _lock_user(session, user.id)
        if not can_own_family(owner.max_screens):
            raise PlanHasNoFamilyError()
        if await _owned_family(session, owner.id) is not None:
            raise FamilyExistsError()
        if await _membership(session, owner.id) is not None:
            raise MemberOfOtherFamilyError()

        family = Family(owner_id=owner.id, name=_family_name(owner), max_members=owner.max_screens)
        session.add(family)
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    logger.info("Family %s created by %s (max_members=%s)", family.id, owner.id, family.max_members)
    return family


# ─────────────────────────────────────────────────────────────
# Invites
# ─────────────────────────────────────────────────────────────
async def create_invite(
    session: AsyncSession,
    owner: User,
    email: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> FamilyInvite:
    """
    Issue an invite, creating the owner's family on first use.

    Steps
    -----
    - **[Step 1]** Validate the optional target email (syntax only).
    - **[Step 2]** Lock the owner's user row; members of another family
      cannot own one.
    - **[Step 3]** Load and lock the family, or lazily create it with
      `max_members = max_screens` (plans with ≥ 2 screens only).
    - **[Step 4]** Count members and pending non-expired invites; reject when
      no slot is left or the pending cap is reached.
    - **[Step 5]** Insert the invite (`expires_at = now + TTL`) and commit.

    Raises
    ------
    InvalidInviteEmailError, MemberOfOtherFamilyError, PlanHasNoFamilyError,
    FamilyCapacityError, PendingInviteLimitError
    """
    now = now or utcnow()
    target_email = _normalize_invite_email(email)

    try:
        locked_owner = await _lock_user(session, owner.id)
        if await _membership(session, locked_owner.id) is not None:
            raise MemberOfOtherFamilyError()

        family = await _owned_family(session, locked_owner.id, lock=True)
        if family is None:
            if not can_own_family(locked_owner.max_screens):
                raise PlanHasNoFamilyError()
            family = Family(
                owner_id=locked_owner.id,
                name=_family_name(locked_owner),
                max_members=locked_owner.max_screens,
            )
            session.add(family)
            await session.flush()
            logger.info("Family %s lazily created for %s", family.id, locked_owner.id)

        members = await _count_members(session, family.id)
        pending = await _count_pending(session, family.id, now)
        if not has_available_slots(family.max_members, members, pending):
            raise FamilyCapacityError(
                details={"max_members": family.max_members, "members": members, "pending_invites": pending}
            )
        if pending >= settings.FAMILY_MAX_PENDING_INVITES:
            raise PendingInviteLimitError(details={"limit": settings.FAMILY_MAX_PENDING_INVITES})

        invite = FamilyInvite(
            family_id=family.id,
            email=target_email,
            status=InviteStatus.PENDING,
            expires_at=now + timedelta(days=settings.FAMILY_INVITE_TTL_DAYS),
            created_at=now,
        )
        session.add(invite)
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    logger.info("Invite %s issued for family %s", invite.id, invite.family_id)
    return invite


async def accept_invite(
    session: AsyncSession,
    user: User,
    token: str,
    *,
    now: Optional[datetime] = None,
) -> FamilyMember:
    """
    Join a family through an invite token.

    Steps
    -----
    - **[Step 1]** Resolve the token; it must be pending and unexpired (an
      expired one is marked `expired` on the way out).
    - **[Step 2]** A targeted invite needs the caller's verified email to match.
    - **[Step 3]** Lock the family and the invite, then re-check ownership,
      memberships, the caller's own plan/trial and capacity.
    - **[Step 4]** Insert the membership, consume the invite, clear the
      member's own entitlement; commit.
    """
    now = now or utcnow()
    try:
        invite = (
            await session.execute(select(FamilyInvite).where(FamilyInvite.token == token))
        ).scalar_one_or_none()
        if invite is None:
            raise InviteNotFoundError()
        if invite.status != InviteStatus.PENDING:
            raise InviteAlreadyUsedError()
        if ensure_utc(invite.expires_at) <= now:
            invite.status = InviteStatus.EXPIRED
            await session.commit()
            raise InviteExpiredError()
        if invite.email:
            if not user.is_email_verified or (user.email or "").lower() != invite.email.lower():
                raise InviteEmailMismatchError()

        family = (
            await session.execute(
                select(Family)
                .where(Family.id == invite.family_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
        ).scalar_one_or_none()
        if family is None:
            raise InviteNotFoundError()

        invite = (
            await session.execute(
                select(FamilyInvite)
                .where(FamilyInvite.id == invite.id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
        ).scalar_one()
        if invite.status != InviteStatus.PENDING:
            raise InviteAlreadyUsedError()

        if family.owner_id == user.id:
            raise OwnerCannotAcceptError()
        membership = await _membership(session, user.id)
        if membership is not None:
            raise AlreadyMemberError() if membership.family_id == family.id else MemberOfOtherFamilyError()
        if await _owned_family(session, user.id) is not None:
            raise OwnerOfOtherFamilyError()

        member_user = await _lock_user(session, user.id)
        if member_user.plan_id is not None or is_trial_active(member_user.trial_ends_at, now=now):
            raise ActivePlanError()

        members = await _count_members(session, family.id)
        if total_members(members) >= family.max_members:
            raise FamilyFullError(details={"max_members": family.max_members})

        member = FamilyMember(family_id=family.id, user_id=member_user.id, joined_at=now)
        session.add(member)
        invite.status = InviteStatus.ACCEPTED
        invite.used_by = member_user.id
        invite.used_at = now
        member_user.plan_id = None
        member_user.max_screens = 1
        member_user.trial_ends_at = None
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    logger.info("User %s joined family %s via invite %s", member.user_id, member.family_id, invite.id)
    return member


async def revoke_invite(session: AsyncSession, owner: User, invite_id: UUID) -> None:
    """Owner withdraws a pending invite, freeing its slot."""
    try:
        invite = (
            await session.execute(
                select(FamilyInvite)
                .join(Family, Family.id == FamilyInvite.family_id)
                .where(FamilyInvite.id == invite_id, Family.owner_id == owner.id)
                .with_for_update()
            )
        ).scalar_one_or_none()
        if invite is None:
            raise InviteNotFoundError()
        if invite.status != InviteStatus.PENDING:
            raise InviteAlreadyUsedError()
        invite.status = InviteStatus.REVOKED
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    logger.info("Invite %s revoked by %s", invite_id, owner.id)


# ─────────────────────────────────────────────────────────────
# Members
# ─────────────────────────────────────────────────────────────
async def remove_member(session: AsyncSession, owner: User, member_id: UUID) -> None:
    try:
        family = await _owned_family(session, owner.id, lock=True)
        if family is None:
            raise NotFamilyOwnerError()
        member = await session.get(FamilyMember, member_id)
        if member is None or member.family_id != family.id:
            raise MemberNotFoundError()
        await session.delete(member)
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    logger.info("Member %s removed from family %s", member_id, family.id)


async def leave_family(session: AsyncSession, user: User) -> None:
    try:
        membership = await _membership(session, user.id)
        if membership is None:
            raise NotFamilyMemberError()
        family_id = membership.family_id
        await session.delete(membership)
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    logger.info("User %s left family %s", user.id, family_id)


# ─────────────────────────────────────────────────────────────
# Read model
# ─────────────────────────────────────────────────────────────
@dataclass
class FamilyOverview:
    owned_family: Optional[Family]
    owned_members: Sequence[FamilyMember]
    pending_invites: Sequence[FamilyInvite]
    membership_family: Optional[Family]
    membership_owner: Optional[User]
    membership_members: Sequence[FamilyMember]
    slots: SlotUsage


async def _members_of(session: AsyncSession, family_id: UUID) -> Sequence[FamilyMember]:
    result = await session.execute(
        select(FamilyMember)
        .where(FamilyMember.family_id == family_id)
        .order_by(FamilyMember.joined_at)
        .execution_options(populate_existing=True)
    )
    return result.scalars().all()


async def get_family_overview(
    session: AsyncSession, user: User, *, now: Optional[datetime] = None
) -> FamilyOverview:
    """Owned family (members, live invites), membership elsewhere, and slot usage."""
    now = now or utcnow()

    owned = await _owned_family(session, user.id)
    owned_members: Sequence[FamilyMember] = []
    pending: Sequence[FamilyInvite] = []
    if owned is not None:
        owned_members = await _members_of(session, owned.id)
        pending = (
            await session.execute(
                select(FamilyInvite)
                .where(*_pending_filter(owned.id, now))
                .order_by(FamilyInvite.created_at.desc())
            )
        ).scalars().all()

    membership = await _membership(session, user.id)
    membership_family = membership_owner = None
    membership_members: Sequence[FamilyMember] = []
    if membership is not None:
        membership_family = await session.get(Family, membership.family_id)
        if membership_family is not None:
            membership_owner = await session.get(User, membership_family.owner_id)
            membership_members = await _members_of(session, membership_family.id)

    slots = slot_usage(
        max_screens=user.max_screens,
        family_max_members=owned.max_members if owned is not None else None,
        active_member_count=len(owned_members) if owned is not None else None,
        pending_invite_count=len(pending),
        is_member_elsewhere=membership is not None,
    )
    return FamilyOverview(
        owned_family=owned,
        owned_members=owned_members,
        pending_invites=pending,
        membership_family=membership_family,
        membership_owner=membership_owner,
        membership_members=membership_members,
        slots=slots,
    )


# ─────────────────────────────────────────────────────────────
# Batch job
# ─────────────────────────────────────────────────────────────
async def expire_family_invites(
    session_factory: async_sessionmaker[AsyncSession] = async_session_maker,
    *,
    now: Optional[datetime] = None,
) -> int:
    """Mark pending invites past `expires_at` as expired; returns how many."""
    now = now or utcnow()
    async with session_factory() as session:
        async with session.begin():
            result = await session.execute(
                update(FamilyInvite)
                .where(FamilyInvite.status == InviteStatus.PENDING, FamilyInvite.expires_at <= now)
                .values(status=InviteStatus.EXPIRED)
                .execution_options(synchronize_session=False)
            )
    count = int(result.rowcount or 0)
    if count:
        logger.info("Expired %s family invite(s)", count)
    return count


__all__ = [
    "create_family",
    "create_invite",
    "accept_invite",
    "revoke_invite",
    "remove_member",
    "leave_family",
    "FamilyOverview",
    "get_family_overview",
    "expire_family_invites",
]
