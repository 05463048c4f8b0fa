from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, constr


class InviteCreate(BaseModel):
    """Omit `email` for an open (link) invite."""

    email: Optional[constr(strip_whitespace=True, min_length=3, max_length=320)] = None


class InviteAccept(BaseModel):
    token: constr(strip_whitespace=True, min_length=8, max_length=64)


class InviteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    token: str
    email: Optional[str] = None
    expires_at: datetime


class PersonOut(BaseModel):
    name: Optional[str] = None
    email: str


class MemberOut(BaseModel):
    id: UUID
    user: PersonOut
    joined_at: datetime


class SlotUsageOut(BaseModel):
    used: int
    pending: int
    total: int
    available: int
    can_invite: bool


class OwnedFamilyOut(BaseModel):
    id: UUID
    name: str
    max_members: int
    members: List[MemberOut] = Field(default_factory=list)
    invites: List[InviteOut] = Field(default_factory=list)


class MembershipOut(BaseModel):
    family_id: UUID
    family_name: str
    owner: PersonOut
    members: List[MemberOut] = Field(default_factory=list)


class FamilyOverviewOut(BaseModel):
    owned_family: Optional[OwnedFamilyOut] = None
    membership: Optional[MembershipOut] = None
    slots: SlotUsageOut


class FamilyCreatedOut(BaseModel):
    id: UUID
    name: str
    max_members: int
