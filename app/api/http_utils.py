from __future__ import annotations

"""
ReelNest · HTTP Utilities
=========================

Shared helpers for API routers:

- No-store JSON helper (per-user payloads are never cacheable)
- `no_store` dependency for routes that return models or empty bodies
- Constant-time bearer-secret check used by the cron endpoints
"""

import hmac
from typing import Any, Optional

from fastapi import Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

__all__ = [
    "NO_STORE_HEADERS",
    "json_no_store",
    "no_store",
    "bearer_token",
    "secrets_match",
]

NO_STORE_HEADERS = {
    "Cache-Control": "no-store",
    "Pragma": "no-cache",
    "Expires": "0",
}


def json_no_store(payload: Any, status_code: int = 200) -> JSONResponse:
    """Return a JSON response with strict `no-store` caching."""
    if hasattr(payload, "model_dump"):
        payload = payload.model_dump(mode="json")
    return JSONResponse(
        content=jsonable_encoder(payload),
        status_code=status_code,
        headers=dict(NO_STORE_HEADERS),
    )


def no_store(response: Response) -> None:
    """Dependency: stamp `no-store` headers on the route's response."""
    for key, value in NO_STORE_HEADERS.items():
        response.headers[key] = value


def bearer_token(request: Request) -> Optional[str]:
    """Raw token from `Authorization: Bearer …`, or None."""
    header = request.headers.get("Authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def secrets_match(presented: Optional[str], expected: str) -> bool:
    """Constant-time comparison; an empty expectation never matches."""
    if not presented or not expected:
        return False
    return hmac.compare_digest(presented.encode("utf-8"), expected.encode("utf-8"))
