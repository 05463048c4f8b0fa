from __future__ import annotations

"""
ReelNest — Trial management
===========================

Every new account may get one 7-day Duo trial (`trial_used` guards reuse).
While `trial_ends_at` is set, access depends on it; once it passes,
`expire_trials()` (cron endpoint / worker) strips the plan and dissolves the
family the trial paid for.
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.models.family import Family, FamilyInvite, FamilyMember
from app.db.models.plan import Plan
from app.db.models.user import User
from app.db.session import async_session_maker
from app.schemas.enums import PlanId
from app.utils.timeutils import ensure_utc, utcnow

logger = logging.getLogger(__name__)

TRIAL_DURATION_DAYS = 7


# ─────────────────────────────────────────────────────────────
# Pure checks
# ─────────────────────────────────────────────────────────────
def is_trial_active(trial_ends_at: Optional[datetime], *, now: Optional[datetime] = None) -> bool:
    if trial_ends_at is None:
        return False
    return (now or utcnow()) < ensure_utc(trial_ends_at)


def trial_days_remaining(trial_ends_at: Optional[datetime], *, now: Optional[datetime] = None) -> int:
    """Whole days left, rounded up; 0 when over or absent."""
    if trial_ends_at is None:
        return 0
    remaining = (ensure_utc(trial_ends_at) - (now or utcnow())).total_seconds()
    if remaining <= 0:
        return 0
    return math.ceil(remaining / 86400)


def has_active_access(user: User, *, now: Optional[datetime] = None) -> bool:
    """Own plan is active, and if it is a trial, the trial has not ended."""
    if not user.plan_id or user.plan is None or not user.plan.active:
        return False
    if user.trial_ends_at is not None:
        return is_trial_active(user.trial_ends_at, now=now)
    return True


async def has_streaming_access(session: AsyncSession, user: User) -> bool:
    """Own access, or membership in a family whose owner has access."""
    if has_active_access(user):
        return True
    result = await session.execute(
        select(User)
        .join(Family, Family.owner_id == User.id)
        .join(FamilyMember, FamilyMember.family_id == Family.id)
        .where(FamilyMember.user_id == user.id)
    )
    owner = result.scalar_one_or_none()
    return owner is not None and has_active_access(owner)


# ─────────────────────────────────────────────────────────────
# Writes
# ─────────────────────────────────────────────────────────────
async def assign_duo_trial(session: AsyncSession, user_id: UUID) -> bool:
    """
    Grant the Duo plan for `TRIAL_DURATION_DAYS`, once per account.

    Called from the identity provider's post-signup hook; account creation
    itself lives outside this service.

    Returns
    -------
    bool
        False when the Duo plan is missing/inactive or the trial was used.
    """
    plan = await session.get(Plan, PlanId.DUO.value)
    if plan is None or not plan.active:
        logger.error("Duo plan missing or inactive; trial not assigned to %s", user_id)
        return False

    user = await session.get(User, user_id, with_for_update=True)
    if user is None or user.trial_used:
        await session.rollback()
        return False

    user.plan_id = plan.id
    user.max_screens = plan.screens
    user.trial_ends_at = utcnow() + timedelta(days=TRIAL_DURATION_DAYS)
    user.trial_used = True
    await session.commit()
    logger.info("Duo trial assigned to %s until %s", user_id, user.trial_ends_at.isoformat())
    return True


async def _expire_one(session: AsyncSession, user_id: UUID, now: datetime) -> bool:
    user = (
        await session.execute(
            select(User)
            .where(User.id == user_id, User.trial_ends_at <= now, User.plan_id.is_not(None))
            .with_for_update()
        )
    ).scalar_one_or_none()
    if user is None:
        # Renewed or already handled since the candidate scan.
        return False

    family_id = (
        await session.execute(select(Family.id).where(Family.owner_id == user_id))
    ).scalar_one_or_none()
    if family_id is not None:
        await session.execute(delete(FamilyMember).where(FamilyMember.family_id == family_id))
        await session.execute(delete(FamilyInvite).where(FamilyInvite.family_id == family_id))
        await session.execute(delete(Family).where(Family.id == family_id))

    user.plan_id = None
    user.max_screens = 1
    user.trial_ends_at = None
    return True


async def expire_trials(
    session_factory: async_sessionmaker[AsyncSession] = async_session_maker,
    *,
    now: Optional[datetime] = None,
) -> int:
    """
    Revoke ended trials and dissolve the families they funded.

    Steps
    -----
    - **[Step 1]** Collect users with `trial_ends_at <= now` that still hold a plan.
    - **[Step 2]** Per user, in its own transaction: delete the owned family
      (members, invites, family), clear plan, reset screens to 1, clear trial.
    - **[Step 3]** A failing user is rolled back, logged and skipped.

    Returns
    -------
    int
        Users processed in this run; a second run right after returns 0.
    """
    now = now or utcnow()
    async with session_factory() as session:
        candidates = (
            await session.execute(
                select(User.id).where(User.trial_ends_at <= now, User.plan_id.is_not(None))
            )
        ).scalars().all()

    if not candidates:
        return 0

    expired = 0
    for user_id in candidates:
        try:
            async with session_factory() as session:
                async with session.begin():
                    changed = await _expire_one(session, user_id, now)
            if changed:
                expired += 1
        except Exception:
            logger.exception("Trial expiry failed for user %s; continuing", user_id)

    if expired:
        logger.info("Expired %s trial(s) and dissolved their families", expired)
    return expired


__all__ = [
    "TRIAL_DURATION_DAYS",
    "is_trial_active",
    "trial_days_remaining",
    "has_active_access",
    "has_streaming_access",
    "assign_duo_trial",
    "expire_trials",
]
