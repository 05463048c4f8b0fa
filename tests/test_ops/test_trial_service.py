from datetime import timedelta

import pytest
from sqlalchemy import func, select

from app.db.models.family import Family, FamilyInvite, FamilyMember
from app.db.models.plan import Plan
from app.schemas.enums import PlanId
from app.services import family_service, trial_service
from app.services.trial_service import (
    assign_duo_trial,
    expire_trials,
    has_active_access,
    has_streaming_access,
    is_trial_active,
    trial_days_remaining,
)
from app.utils.timeutils import utcnow


async def _count(db, model) -> int:
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


# ─────────────────────────────────────────────────────────────
# Pure checks
# ─────────────────────────────────────────────────────────────
def test_trial_window():
    now = utcnow()
    assert is_trial_active(now + timedelta(seconds=1), now=now)
    assert not is_trial_active(now, now=now)
    assert not is_trial_active(None)


@pytest.mark.parametrize(
    "offset,expected",
    [
        (timedelta(days=2, hours=12), 3),
        (timedelta(days=7), 7),
        (timedelta(minutes=1), 1),
        (timedelta(seconds=-1), 0),
    ],
)
def test_trial_days_remaining_rounds_up(offset, expected):
    now = utcnow()
    assert trial_days_remaining(now + offset, now=now) == expected


def test_trial_days_remaining_without_trial():
    assert trial_days_remaining(None) == 0


@pytest.mark.anyio
async def test_active_access(create_test_user):
    assert has_active_access(await create_test_user(plan=PlanId.INDIVIDUAL))
    assert has_active_access(await create_test_user(plan=PlanId.DUO, trial_days=2))
    assert not has_active_access(await create_test_user(plan=PlanId.DUO, trial_days=-1))
    assert not has_active_access(await create_test_user())


@pytest.mark.anyio
async def test_inactive_plan_grants_nothing(db_session, create_test_user):
    user = await create_test_user(plan=PlanId.INDIVIDUAL)
    plan = await db_session.get(Plan, PlanId.INDIVIDUAL.value)
    plan.active = False
    await db_session.commit()
    try:
        assert not has_active_access(user)
    finally:
        plan.active = True
        await db_session.commit()


@pytest.mark.anyio
async def test_streaming_access_through_family(db_session, create_test_user):
    owner = await create_test_user(plan=PlanId.DUO, trial_days=3)
    member = await create_test_user()
    invite = await family_service.create_invite(db_session, owner)
    await family_service.accept_invite(db_session, member, invite.token)

    assert await has_streaming_access(db_session, member)

    owner.trial_ends_at = utcnow() - timedelta(minutes=1)
    await db_session.commit()
    assert not await has_streaming_access(db_session, member)


# ─────────────────────────────────────────────────────────────
# assign_duo_trial
# ─────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_assign_duo_trial_once(db_session, create_test_user):
    user = await create_test_user()
    user_id = user.id

    assert await assign_duo_trial(db_session, user_id) is True
    await db_session.refresh(user)
    assert user.plan_id == PlanId.DUO.value
    assert user.max_screens == 2
    assert user.trial_used is True
    assert trial_days_remaining(user.trial_ends_at) == trial_service.TRIAL_DURATION_DAYS

    assert await assign_duo_trial(db_session, user_id) is False


# ─────────────────────────────────────────────────────────────
# expire_trials
# ─────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_expire_trials_dissolves_family(db_session, session_factory, create_test_user):
    owner = await create_test_user(plan=PlanId.FAMILY, trial_days=5)
    member = await create_test_user()
    first = await family_service.create_invite(db_session, owner)
    await family_service.create_invite(db_session, owner, "pending@example.com")
    await family_service.accept_invite(db_session, member, first.token)

    active = await create_test_user(plan=PlanId.DUO, trial_days=2)
    paying = await create_test_user(plan=PlanId.INDIVIDUAL)
    lapsed_without_plan = await create_test_user(trial_days=-3)

    owner.trial_ends_at = utcnow() - timedelta(hours=1)
    await db_session.commit()

    assert await expire_trials(session_factory) == 1

    await db_session.refresh(owner)
    assert owner.plan_id is None
    assert owner.max_screens == 1
    assert owner.trial_ends_at is None
    assert owner.trial_used is True
    assert await _count(db_session, Family) == 0
    assert await _count(db_session, FamilyMember) == 0
    assert await _count(db_session, FamilyInvite) == 0

    for untouched in (active, paying):
        await db_session.refresh(untouched)
        assert untouched.plan_id is not None
    await db_session.refresh(lapsed_without_plan)
    assert lapsed_without_plan.trial_ends_at is not None

    assert await expire_trials(session_factory) == 0


@pytest.mark.anyio
async def test_expire_trials_skips_failing_user(db_session, session_factory, create_test_user, monkeypatch, log_messages):
    broken = await create_test_user(plan=PlanId.DUO, trial_days=-1)
    fine = await create_test_user(plan=PlanId.DUO, trial_days=-1)
    broken_id = broken.id

    real_expire_one = trial_service._expire_one

    async def _flaky(session, user_id, now):
        if user_id == broken_id:
            raise RuntimeError("boom")
        return await real_expire_one(session, user_id, now)

    monkeypatch.setattr(trial_service, "_expire_one", _flaky)

    assert await expire_trials(session_factory) == 1

    await db_session.refresh(broken)
    await db_session.refresh(fine)
    assert broken.plan_id == PlanId.DUO.value
    assert fine.plan_id is None
    assert any("Trial expiry failed" in m for m in log_messages)


@pytest.mark.anyio
async def test_partial_cascade_rolls_back_as_one_unit(db_session, session_factory, create_test_user, monkeypatch):
    owner = await create_test_user(plan=PlanId.FAMILY, trial_days=5)
    member = await create_test_user()
    first = await family_service.create_invite(db_session, owner)
    await family_service.create_invite(db_session, owner, "pending@example.com")
    await family_service.accept_invite(db_session, member, first.token)
    solo = await create_test_user(plan=PlanId.DUO, trial_days=-1)

    owner.trial_ends_at = utcnow() - timedelta(hours=1)
    await db_session.commit()

    real_delete = trial_service.delete

    def _delete_failing_on_invites(entity):
        # members are already deleted when this fires
        if entity is FamilyInvite:
            raise RuntimeError("invite delete failed")
        return real_delete(entity)

    monkeypatch.setattr(trial_service, "delete", _delete_failing_on_invites)

    assert await expire_trials(session_factory) == 1

    await db_session.refresh(owner)
    await db_session.refresh(solo)
    assert owner.plan_id == PlanId.FAMILY.value
    assert owner.trial_ends_at is not None
    assert await _count(db_session, FamilyMember) == 1
    assert await _count(db_session, FamilyInvite) == 2
    assert await _count(db_session, Family) == 1
    assert solo.plan_id is None
