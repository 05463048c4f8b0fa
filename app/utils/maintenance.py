# app/utils/maintenance.py
from __future__ import annotations

"""
ReelNest — in-process maintenance jobs
--------------------------------------
- Trial expiry and family-invite expiry on an APScheduler interval
- Replica-safe via a Redis distributed lock (skipped when another node holds it)
- Runs unlocked when Redis is unavailable (single-node/dev)

The same batches are reachable over HTTP (`/api/v1/ops/cron/...`) for
deployments that prefer an external scheduler.
"""

import logging
from datetime import timezone
from typing import Awaitable, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.core.config import settings
from app.core.redis_client import LockNotAcquiredError, redis_wrapper
from app.services.family_service import expire_family_invites
from app.services.trial_service import expire_trials

logger = logging.getLogger(__name__)

LOCK_TTL_SECONDS = 300
JITTER_SECONDS = 15
TRIAL_LOCK_KEY = "maintenance:expire-trials:lock"
INVITE_LOCK_KEY = "maintenance:expire-invites:lock"


# ─────────────────────────────────────────────
# 🔒 Lock wrapper
# ─────────────────────────────────────────────
async def _run_locked(lock_key: str, job: Callable[[], Awaitable[int]]) -> Optional[int]:
    """
    Run `job` under `lock_key`; None when another worker holds the lock.

    Only a failed acquisition skips the tick. Errors from `job` itself,
    timeouts included, propagate to the scheduler.
    """
    if not redis_wrapper.connected:
        return await job()
    try:
        async with redis_wrapper.lock(lock_key, timeout=LOCK_TTL_SECONDS, blocking_timeout=2):
            return await job()
    except LockNotAcquiredError:
        logger.debug("Maintenance lock %s busy; skipping this tick", lock_key)
        return None


# ─────────────────────────────────────────────
# 🧹 Jobs
# ─────────────────────────────────────────────
async def run_trial_expiry() -> Optional[int]:
    count = await _run_locked(TRIAL_LOCK_KEY, expire_trials)
    if count:
        logger.info("Trial expiry: %s user(s) processed", count)
    return count


async def run_invite_expiry() -> Optional[int]:
    count = await _run_locked(INVITE_LOCK_KEY, expire_family_invites)
    if count:
        logger.info("Invite expiry: %s invite(s) expired", count)
    return count


# ─────────────────────────────────────────────
# ⏰ Scheduler
# ─────────────────────────────────────────────
def build_maintenance_scheduler(
    *,
    trial_interval_minutes: Optional[int] = None,
    invite_interval_minutes: Optional[int] = None,
    jitter_seconds: int = JITTER_SECONDS,
) -> AsyncIOScheduler:
    """Create (but do not start) the scheduler with both jobs registered."""
    trial_minutes = trial_interval_minutes or settings.TRIAL_EXPIRY_INTERVAL_MINUTES
    invite_minutes = invite_interval_minutes or settings.INVITE_EXPIRY_INTERVAL_MINUTES

    scheduler = AsyncIOScheduler(timezone=timezone.utc)
    scheduler.add_job(
        run_trial_expiry,
        IntervalTrigger(minutes=trial_minutes, jitter=jitter_seconds, timezone=timezone.utc),
        id="expire_trials",
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        run_invite_expiry,
        IntervalTrigger(minutes=invite_minutes, jitter=jitter_seconds, timezone=timezone.utc),
        id="expire_invites",
        max_instances=1,
        coalesce=True,
    )
    return scheduler


def start_maintenance_scheduler(**kwargs) -> AsyncIOScheduler:
    """Build and start the scheduler on the running event loop."""
    scheduler = build_maintenance_scheduler(**kwargs)
    scheduler.start()
    logger.info("Maintenance scheduler started | jobs=%s", [job.id for job in scheduler.get_jobs()])
    return scheduler


__all__ = [
    "run_trial_expiry",
    "run_invite_expiry",
    "build_maintenance_scheduler",
    "start_maintenance_scheduler",
]
