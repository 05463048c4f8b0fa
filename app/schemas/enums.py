from __future__ import annotations

"""
Central enum definitions used across ReelNest.

Design notes
------------
• All enums subclass `str, PyEnum` for JSON-friendly serialization.
• VALUE STRINGS are **stable** once deployed (DB rows and clients depend on them).
"""

from enum import Enum as PyEnum


# ──────────────────────────────────────────────────────────────
# Catalog
# ──────────────────────────────────────────────────────────────
class MediaType(str, PyEnum):
    """TMDB media kind of a watch record."""
    MOVIE = "movie"
    TV = "tv"


# ──────────────────────────────────────────────────────────────
# Family plan
# ──────────────────────────────────────────────────────────────
class InviteStatus(str, PyEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REVOKED = "revoked"
    EXPIRED = "expired"


class PlanId(str, PyEnum):
    """Stable plan identifiers; screens per plan live in `PLAN_SCREENS`."""
    INDIVIDUAL = "plan_individual"
    DUO = "plan_duo"
    FAMILY = "plan_family"


PLAN_SCREENS: dict[PlanId, int] = {
    PlanId.INDIVIDUAL: 1,
    PlanId.DUO: 2,
    PlanId.FAMILY: 4,
}


__all__ = ["MediaType", "InviteStatus", "PlanId", "PLAN_SCREENS"]
