# app/db/base.py
"""
ReelNest — SQLAlchemy Base registry
===================================

Import all ORM models so their tables are registered on `Base.metadata`
(Alembic autogeneration, test schema creation).

Keep this file import-only; no runtime logic.
"""

from app.db.base_class import Base

# ───────────────────────────────────────────────────────────────
# Accounts & plans
# ───────────────────────────────────────────────────────────────
from app.db.models.plan import Plan
from app.db.models.user import User

# ───────────────────────────────────────────────────────────────
# Engagement
# ───────────────────────────────────────────────────────────────
from app.db.models.watch_history import WatchHistory

# ───────────────────────────────────────────────────────────────
# Family sharing
# ───────────────────────────────────────────────────────────────
from app.db.models.family import Family, FamilyMember, FamilyInvite

__all__ = [
    "Base",
    "Plan",
    "User",
    "WatchHistory",
    "Family",
    "FamilyMember",
    "FamilyInvite",
]
