"""
Family slot accounting.

Pure functions, no I/O. `max_members` always counts the owner; member counts
passed in here never do. A pending invite reserves a slot until it is
accepted, revoked or expired.
"""

from dataclasses import dataclass
from typing import Optional


def total_members(active_member_count: int) -> int:
    """Members plus the owner."""
    return active_member_count + 1


def available_slots(max_members: int, active_member_count: int) -> int:
    """Seats left for new members, ignoring pending invites (may be negative)."""
    return max_members - total_members(active_member_count)


def has_available_slots(max_members: int, active_member_count: int, pending_invite_count: int = 0) -> bool:
    """True when a new invite fits next to members and pending invites."""
    return available_slots(max_members, active_member_count) - pending_invite_count > 0


def can_own_family(max_screens: int) -> bool:
    return max_screens >= 2


def members_used(*, max_screens: int, active_member_count: Optional[int], is_member_elsewhere: bool) -> int:
    """
    Seats shown as taken on the plan panel.

    `active_member_count` is `None` when the user owns no family yet: a
    multi-screen subscriber still occupies their own seat, a single-screen
    user or a member of someone else's family occupies none.
    """
    if active_member_count is not None:
        return total_members(active_member_count)
    if can_own_family(max_screens) and not is_member_elsewhere:
        return 1
    return 0


@dataclass(frozen=True)
class SlotUsage:
    used: int
    pending: int
    total: int
    available: int
    can_invite: bool


def slot_usage(
    *,
    max_screens: int,
    family_max_members: Optional[int] = None,
    active_member_count: Optional[int] = None,
    pending_invite_count: int = 0,
    is_member_elsewhere: bool = False,
) -> SlotUsage:
    """
    Single source for both the plan panel and invite gating.

    Pass `family_max_members`/`active_member_count` only when the user owns a
    family; otherwise the plan's screen count is the prospective capacity.
    """
    used = members_used(
        max_screens=max_screens,
        active_member_count=active_member_count,
        is_member_elsewhere=is_member_elsewhere,
    ) + pending_invite_count
    total = family_max_members if family_max_members is not None else max_screens
    available = total - used
    can_invite = (
        available > 0
        and not is_member_elsewhere
        and (family_max_members is not None or can_own_family(max_screens))
    )
    return SlotUsage(used=used, pending=pending_invite_count, total=total, available=available, can_invite=can_invite)


__all__ = [
    "total_members",
    "available_slots",
    "has_available_slots",
    "can_own_family",
    "members_used",
    "SlotUsage",
    "slot_usage",
]
