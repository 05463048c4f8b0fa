
# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ ReelNest · User API (Family sharing)                                     ║
# ╠──────────────────────────────────────────────────────────────────────────╣
# ║  - GET    /family                       → Overview + slot usage          ║
# ║  - POST   /family                       → Create family (201)            ║
# ║  - POST   /family/invites               → Create invite (201)            ║
# ║  - DELETE /family/invites/{invite_id}   → Revoke pending invite (204)    ║
# ║  - POST   /family/accept                → Accept invite by token (204)   ║
# ║  - DELETE /family/members/{member_id}   → Owner removes member (204)     ║
# ║  - POST   /family/leave                 → Member leaves (204)            ║
# ╠──────────────────────────────────────────────────────────────────────────╣
# ║ Capacity rules and locking live in `app.services.family_service`; this   ║
# ║ layer only maps models to response schemas. Errors are problem+json.     ║
# ╚══════════════════════════════════════════════════════════════════════════╝
"""Family-sharing endpoints."""

import logging
from typing import Sequence
from uuid import UUID

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.http_utils import json_no_store, no_store
from app.core.security import get_current_user
from app.db.models.family import FamilyMember
from app.db.models.user import User
from app.db.session import get_async_db
from app.schemas.family import (
    FamilyCreatedOut,
    FamilyOverviewOut,
    InviteAccept,
    InviteCreate,
    InviteOut,
    MemberOut,
    MembershipOut,
    OwnedFamilyOut,
    PersonOut,
    SlotUsageOut,
)
from app.services import family_service
from app.services.family_service import FamilyOverview

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/family", tags=["Family"])


# ─────────────────────────────────────────────────────────────────────────────
# 🧩 Mapping helpers
# ─────────────────────────────────────────────────────────────────────────────
def _person(user: User) -> PersonOut:
    return PersonOut(name=user.full_name, email=user.email)


def _members(rows: Sequence[FamilyMember]) -> list[MemberOut]:
    return [MemberOut(id=m.id, user=_person(m.user), joined_at=m.joined_at) for m in rows]


def _overview_out(view: FamilyOverview) -> FamilyOverviewOut:
    owned = None
    if view.owned_family is not None:
        owned = OwnedFamilyOut(
            id=view.owned_family.id,
            name=view.owned_family.name,
            max_members=view.owned_family.max_members,
            members=_members(view.owned_members),
            invites=[InviteOut.model_validate(i) for i in view.pending_invites],
        )
    membership = None
    if view.membership_family is not None and view.membership_owner is not None:
        membership = MembershipOut(
            family_id=view.membership_family.id,
            family_name=view.membership_family.name,
            owner=_person(view.membership_owner),
            members=_members(view.membership_members),
        )
    slots = SlotUsageOut(
        used=view.slots.used,
        pending=view.slots.pending,
        total=view.slots.total,
        available=view.slots.available,
        can_invite=view.slots.can_invite,
    )
    return FamilyOverviewOut(owned_family=owned, membership=membership, slots=slots)


# ─────────────────────────────────────────────────────────────────────────────
# 👪 Family
# ─────────────────────────────────────────────────────────────────────────────
@router.get("", response_model=FamilyOverviewOut, summary="Family overview and slot usage")
async def get_family(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    view = await family_service.get_family_overview(db, current_user)
    return json_no_store(_overview_out(view))


@router.post(
    "",
    response_model=FamilyCreatedOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create the caller's family",
)
async def post_family(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    family = await family_service.create_family(db, current_user)
    body = FamilyCreatedOut(id=family.id, name=family.name, max_members=family.max_members)
    return json_no_store(body, status_code=status.HTTP_201_CREATED)


# ─────────────────────────────────────────────────────────────────────────────
# ✉️ Invites
# ─────────────────────────────────────────────────────────────────────────────
@router.post(
    "/invites",
    response_model=InviteOut,
    status_code=status.HTTP_201_CREATED,
    summary="Invite someone (targeted by email, or an open link)",
)
async def post_invite(
    payload: InviteCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    invite = await family_service.create_invite(db, current_user, payload.email)
    return json_no_store(InviteOut.model_validate(invite), status_code=status.HTTP_201_CREATED)


@router.delete(
    "/invites/{invite_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(no_store)],
    summary="Revoke a pending invite",
)
async def delete_invite(
    invite_id: UUID = Path(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
) -> None:
    await family_service.revoke_invite(db, current_user, invite_id)


@router.post(
    "/accept",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(no_store)],
    summary="Join a family with an invite token",
)
async def post_accept(
    payload: InviteAccept,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
) -> None:
    await family_service.accept_invite(db, current_user, payload.token)


# ─────────────────────────────────────────────────────────────────────────────
# 👥 Members
# ─────────────────────────────────────────────────────────────────────────────
@router.delete(
    "/members/{member_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(no_store)],
    summary="Remove a member from the caller's family",
)
async def delete_member(
    member_id: UUID = Path(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
) -> None:
    await family_service.remove_member(db, current_user, member_id)


@router.post(
    "/leave",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(no_store)],
    summary="Leave the family the caller belongs to",
)
async def post_leave(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
) -> None:
    await family_service.leave_family(db, current_user)


__all__ = ["router"]
