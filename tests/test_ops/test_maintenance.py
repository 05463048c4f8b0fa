from datetime import timedelta

import pytest

from app.utils import maintenance


@pytest.fixture()
def fake_jobs(monkeypatch):
    calls = []

    async def _trials():
        calls.append("trials")
        return 2

    async def _invites():
        calls.append("invites")
        return 5

    monkeypatch.setattr(maintenance, "expire_trials", _trials)
    monkeypatch.setattr(maintenance, "expire_family_invites", _invites)
    return calls


@pytest.mark.anyio
async def test_jobs_run_under_lock(fake_jobs, redis_client):
    assert await maintenance.run_trial_expiry() == 2
    assert await maintenance.run_invite_expiry() == 5
    assert fake_jobs == ["trials", "invites"]
    assert redis_client.locks == set()


@pytest.mark.anyio
async def test_busy_lock_skips_the_tick(fake_jobs, redis_client):
    redis_client.locks.add(maintenance.TRIAL_LOCK_KEY)
    assert await maintenance.run_trial_expiry() is None
    assert fake_jobs == []


@pytest.mark.anyio
async def test_jobs_run_unlocked_without_redis(fake_jobs, redis_down):
    assert await maintenance.run_invite_expiry() == 5
    assert fake_jobs == ["invites"]


def test_scheduler_registers_both_jobs():
    scheduler = maintenance.build_maintenance_scheduler(trial_interval_minutes=30, invite_interval_minutes=90)
    jobs = {job.id: job for job in scheduler.get_jobs()}
    assert set(jobs) == {"expire_trials", "expire_invites"}
    assert jobs["expire_trials"].trigger.interval == timedelta(minutes=30)
    assert jobs["expire_invites"].trigger.interval == timedelta(minutes=90)
    assert jobs["expire_trials"].max_instances == 1


@pytest.mark.anyio
async def test_job_timeout_is_not_mistaken_for_busy_lock(monkeypatch, redis_client):
    async def _stalled_query():
        raise TimeoutError("statement timeout")

    monkeypatch.setattr(maintenance, "expire_trials", _stalled_query)

    with pytest.raises(TimeoutError, match="statement timeout"):
        await maintenance.run_trial_expiry()
    assert redis_client.locks == set()
