"""
ReelNest — ORM models package

Importing this package registers every table on `Base.metadata`.
"""

from .plan import Plan
from .user import User
from .watch_history import WatchHistory
from .family import Family, FamilyMember, FamilyInvite

__all__ = [
    "Plan",
    "User",
    "WatchHistory",
    "Family",
    "FamilyMember",
    "FamilyInvite",
]
