from __future__ import annotations

"""
Dedicated maintenance worker.

Runs the trial-expiry and invite-expiry jobs on APScheduler without serving
HTTP, for deployments that keep `MAINTENANCE_SCHEDULER=false` on the API
replicas.

Run:
  python scripts/worker.py
"""

import asyncio
import logging

from app.core import logger as _logsetup  # noqa: F401
from app.core.redis_client import redis_wrapper
from app.db.session import async_engine
from app.utils.maintenance import start_maintenance_scheduler

logger = logging.getLogger("app.worker")


async def run() -> None:
    try:
        await redis_wrapper.connect()
    except Exception:
        logger.exception("Redis unavailable; jobs run without the distributed lock")

    scheduler = start_maintenance_scheduler()
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.shutdown(wait=False)
        await async_engine.dispose()
        await redis_wrapper.close()


def main() -> None:
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Worker stopped")


if __name__ == "__main__":
    main()
