# app/core/exceptions.py
from __future__ import annotations

"""
ReelNest — Application Exceptions
=================================
A thin layer on top of FastAPI/Starlette's `HTTPException` that attaches a
stable machine-readable `reason` plus optional `details`, rendered by
`app.core.exception_handlers` as problem+json.

Key ideas
---------
- One base `AppException` carrying `code`, `reason`, `details`.
- Domain exceptions inherit from it and pin their status/reason/message, so
  services raise them directly and routers stay thin.
- Callers that already catch `HTTPException` keep working.

Usage
-----
    raise FamilyCapacityError(details={"max_members": 2})
"""

from typing import Any, ClassVar, Dict, Optional

from fastapi import HTTPException, status

__all__ = [
    "AppException",
    "InvalidTokenException",
    "WatchRecordNotFoundError",
    "PlanHasNoFamilyError",
    "FamilyExistsError",
    "FamilyCapacityError",
    "PendingInviteLimitError",
    "InvalidInviteEmailError",
    "InviteNotFoundError",
    "InviteAlreadyUsedError",
    "InviteExpiredError",
    "InviteEmailMismatchError",
    "OwnerCannotAcceptError",
    "AlreadyMemberError",
    "MemberOfOtherFamilyError",
    "OwnerOfOtherFamilyError",
    "ActivePlanError",
    "FamilyFullError",
    "FamilyNotFoundError",
    "MemberNotFoundError",
    "NotFamilyOwnerError",
    "NotFamilyMemberError",
    "SubscriptionRequiredError",
]


# ──────────────────────────────────────────────────────────────
# 📦 Core: AppException
# ──────────────────────────────────────────────────────────────
class AppException(HTTPException):
    """Base application-level exception with optional metadata.

    Attributes
    -----------
    status_code : int
        HTTP status code.
    message : str
        Human-readable message (also serialized as `detail`).
    reason : str
        Stable snake_case identifier clients can branch on.
    code : int
        Typed error code. Defaults to `status_code`.
    details : Any
        Machine-readable details (limits, ids).
    """

    default_status: ClassVar[int] = status.HTTP_400_BAD_REQUEST
    default_reason: ClassVar[str] = "error"
    default_message: ClassVar[str] = "Request could not be processed"

    def __init__(
        self,
        *,
        status_code: Optional[int] = None,
        message: Optional[str] = None,
        reason: Optional[str] = None,
        code: Optional[int] = None,
        details: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        status_code = int(status_code or self.default_status)
        message = message or self.default_message
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.message: str = message
        self.reason: str = reason or self.default_reason
        self.code: int = int(code or status_code)
        self.details: Optional[Any] = details

    def to_problem(self) -> Dict[str, Any]:
        """Extra members merged into the problem+json body."""
        body: Dict[str, Any] = {"reason": self.reason, "code": self.code}
        if self.details is not None:
            body["details"] = self.details
        return body


# ──────────────────────────────────────────────────────────────
# 🔑 Auth/Token
# ──────────────────────────────────────────────────────────────
class InvalidTokenException(AppException):
    """Raised for invalid or expired access tokens (401)."""

    default_status = status.HTTP_401_UNAUTHORIZED
    default_reason = "invalid_token"
    default_message = "Invalid or expired token"

    def __init__(self, *, detail: Optional[str] = None, headers: Optional[Dict[str, str]] = None) -> None:
        super().__init__(message=detail, headers=headers or {"WWW-Authenticate": "Bearer"})


# ──────────────────────────────────────────────────────────────
# 🎬 Watch history
# ──────────────────────────────────────────────────────────────
class WatchRecordNotFoundError(AppException):
    default_status = status.HTTP_404_NOT_FOUND
    default_reason = "watch_record_not_found"
    default_message = "Watch history entry not found"


# ──────────────────────────────────────────────────────────────
# 👨‍👩‍👧 Family lifecycle
# ──────────────────────────────────────────────────────────────
class PlanHasNoFamilyError(AppException):
    """The user's plan has a single screen, so it cannot own a family."""

    default_status = status.HTTP_403_FORBIDDEN
    default_reason = "plan_has_no_family"
    default_message = "Your plan does not include family sharing"


class FamilyExistsError(AppException):
    default_status = status.HTTP_409_CONFLICT
    default_reason = "family_exists"
    default_message = "You already own a family"


class FamilyCapacityError(AppException):
    """No slot left once active members and pending invites are counted."""

    default_status = status.HTTP_400_BAD_REQUEST
    default_reason = "family_capacity"
    default_message = "Family member limit reached; remove a member or revoke an invite first"


class PendingInviteLimitError(AppException):
    default_status = status.HTTP_400_BAD_REQUEST
    default_reason = "pending_invite_limit"
    default_message = "Too many pending invites"


class InvalidInviteEmailError(AppException):
    default_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_reason = "invalid_invite_email"
    default_message = "Invite email address is not valid"


class InviteNotFoundError(AppException):
    default_status = status.HTTP_404_NOT_FOUND
    default_reason = "invite_not_found"
    default_message = "Invite not found"


class InviteAlreadyUsedError(AppException):
    default_status = status.HTTP_400_BAD_REQUEST
    default_reason = "invite_already_used"
    default_message = "Invite is no longer pending"


class InviteExpiredError(AppException):
    default_status = status.HTTP_400_BAD_REQUEST
    default_reason = "invite_expired"
    default_message = "Invite has expired"


class InviteEmailMismatchError(AppException):
    """Targeted invite accepted by an account with another (or unverified) email."""

    default_status = status.HTTP_403_FORBIDDEN
    default_reason = "invite_email_mismatch"
    default_message = "This invite was sent to a different email address"


class OwnerCannotAcceptError(AppException):
    default_status = status.HTTP_400_BAD_REQUEST
    default_reason = "owner_cannot_accept"
    default_message = "You cannot accept an invite to your own family"


class AlreadyMemberError(AppException):
    default_status = status.HTTP_409_CONFLICT
    default_reason = "already_member"
    default_message = "You are already a member of this family"


class MemberOfOtherFamilyError(AppException):
    default_status = status.HTTP_409_CONFLICT
    default_reason = "member_of_other_family"
    default_message = "You are already a member of another family"


class OwnerOfOtherFamilyError(AppException):
    default_status = status.HTTP_409_CONFLICT
    default_reason = "owner_of_other_family"
    default_message = "You already own a family"


class ActivePlanError(AppException):
    default_status = status.HTTP_409_CONFLICT
    default_reason = "active_plan"
    default_message = "Cancel your own plan or trial before joining a family"


class FamilyFullError(AppException):
    default_status = status.HTTP_400_BAD_REQUEST
    default_reason = "family_full"
    default_message = "This family has reached its member limit"


class FamilyNotFoundError(AppException):
    default_status = status.HTTP_404_NOT_FOUND
    default_reason = "family_not_found"
    default_message = "Family not found"


class MemberNotFoundError(AppException):
    default_status = status.HTTP_404_NOT_FOUND
    default_reason = "member_not_found"
    default_message = "Family member not found"


class NotFamilyOwnerError(AppException):
    default_status = status.HTTP_403_FORBIDDEN
    default_reason = "not_family_owner"
    default_message = "Only the family owner can do this"


class NotFamilyMemberError(AppException):
    default_status = status.HTTP_404_NOT_FOUND
    default_reason = "not_family_member"
    default_message = "You are not a member of any family"


# ──────────────────────────────────────────────────────────────
# 🎟️ Entitlement
# ──────────────────────────────────────────────────────────────
class SubscriptionRequiredError(AppException):
    default_status = status.HTTP_403_FORBIDDEN
    default_reason = "subscription_required"
    default_message = "An active plan is required to watch"
