from __future__ import annotations

"""
Seed the plan catalog (idempotent).

    python scripts/seed_plans.py

Inserts missing plans and refreshes screens/prices of existing ones.
"""

import asyncio
import logging
from decimal import Decimal

from app.core import logger as _logsetup  # noqa: F401
from app.db.models.plan import Plan
from app.db.session import async_engine, transactional_async_session
from app.schemas.enums import PLAN_SCREENS, PlanId

logger = logging.getLogger("app.seed")

CATALOG = {
    PlanId.INDIVIDUAL: ("Individual", Decimal("19.90"), Decimal("199.00")),
    PlanId.DUO: ("Duo", Decimal("29.90"), Decimal("299.00")),
    PlanId.FAMILY: ("Family", Decimal("39.90"), Decimal("399.00")),
}


async def seed() -> int:
    changed = 0
    async with transactional_async_session() as session:
        for plan_id, (name, monthly, yearly) in CATALOG.items():
            plan = await session.get(Plan, plan_id.value)
            if plan is None:
                plan = Plan(id=plan_id.value)
                session.add(plan)
            plan.name = name
            plan.screens = PLAN_SCREENS[plan_id]
            plan.price_monthly = monthly
            plan.price_yearly = yearly
            plan.active = True
            changed += 1
    logger.info("Seeded %s plan(s)", changed)
    return changed


async def _main() -> None:
    try:
        await seed()
    finally:
        await async_engine.dispose()


if __name__ == "__main__":
    asyncio.run(_main())
