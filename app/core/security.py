# app/core/security.py
from __future__ import annotations

"""
ReelNest — Authentication helpers
=================================
Accounts and sign-in live with the auth provider; this service only trusts
the HS-signed **access** tokens it shares a secret with.

- `create_access_token()`: mint a token (provider hand-off, tests, scripts)
- `decode_access_token()`: python-jose decode with iss/aud enforcement
- `get_current_user`: FastAPI dependency: bearer → active `User`
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID, uuid4
import logging

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import InvalidTokenException
from app.db.models.user import User
from app.db.session import get_async_db

# ───────────────────────────────────────────────
# 🔐 Constants
# ───────────────────────────────────────────────
ALGORITHM: str = settings.JWT_ALGORITHM
security = HTTPBearer(auto_error=False)
logger = logging.getLogger(__name__)


def _secret() -> str:
    return settings.JWT_SECRET_KEY.get_secret_value()


# ───────────────────────────────────────────────
# 🪪 Access token creation
# ───────────────────────────────────────────────
def create_access_token(user_id: UUID, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed access token for `user_id`."""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    payload: Dict[str, Any] = {
        "sub": str(user_id),
        "exp": expire,
        "iat": now,
        "nbf": now,
        "jti": str(uuid4()),
        "token_type": "access",
    }
    if settings.JWT_ISSUER:
        payload["iss"] = settings.JWT_ISSUER
    if settings.JWT_AUDIENCE:
        payload["aud"] = settings.JWT_AUDIENCE
    return jwt.encode(payload, _secret(), algorithm=ALGORITHM)


# ───────────────────────────────────────────────
# 🔎 Decode
# ───────────────────────────────────────────────
def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate an access token.

    Raises
    ------
    InvalidTokenException
        Bad signature, expired, wrong issuer/audience, or not an access token.
    """
    options = {"verify_aud": bool(settings.JWT_AUDIENCE)}
    try:
        payload = jwt.decode(
            token,
            _secret(),
            algorithms=[ALGORITHM],
            audience=settings.JWT_AUDIENCE or None,
            issuer=settings.JWT_ISSUER or None,
            options=options,
        )
    except ExpiredSignatureError:
        raise InvalidTokenException(detail="Token has expired")
    except JWTError:
        raise InvalidTokenException(detail="Invalid token")

    if payload.get("token_type", "access") != "access":
        raise InvalidTokenException(detail="Invalid token type")
    return payload


def get_user_id_from_payload(payload: Dict[str, Any]) -> UUID:
    """Extract `sub` as a UUID; 401 if missing/malformed."""
    raw = payload.get("sub")
    if not raw:
        raise InvalidTokenException(detail="Invalid token: missing subject")
    try:
        return UUID(str(raw))
    except ValueError:
        raise InvalidTokenException(detail="Invalid token: malformed subject")


# ───────────────────────────────────────────────
# 👤 Dependency: Get Current User
# ───────────────────────────────────────────────
async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_async_db),
) -> User:
    """Authenticate the caller from the presented access token.

    Steps:
    1) Require a Bearer credential and decode it.
    2) Load the user; inactive or unknown users are rejected.
    3) Stash the user id on `request.state` for logging.
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise InvalidTokenException(detail="Not authenticated")

    payload = decode_access_token(credentials.credentials)
    user_id = get_user_id_from_payload(payload)

    user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
    if user is None or not user.is_active:
        raise InvalidTokenException(detail="Inactive or missing user")

    request.state.user_id = user.id
    logger.debug("Authenticated user %s", user.id)
    return user


__all__ = [
    "create_access_token",
    "decode_access_token",
    "get_user_id_from_payload",
    "get_current_user",
]
