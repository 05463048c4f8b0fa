# app/middleware/request_id.py
from __future__ import annotations

"""
# ReelNest — Request ID Middleware (pure ASGI)

- Reuses a client-supplied `X-Request-ID` / `X-Correlation-ID` when it is a
  valid UUIDv4, otherwise generates one.
- Exposes it as `request.state.request_id` (problem+json bodies echo it) and
  on the response header.
- Binds `request_id` into the **loguru** context for the whole request.
"""

import re
import uuid

from loguru import logger
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

HEADER_NAME = "X-Request-ID"
MAX_ID_LENGTH = 128

_UUID_V4_RE = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-4[0-9a-fA-F]{3}-[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}$"
)


class RequestIDMiddleware:
    """Attach a per-request correlation id."""

    def __init__(self, app: ASGIApp, header_name: str = HEADER_NAME) -> None:
        self.app = app
        self.header_name = header_name

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            return await self.app(scope, receive, send)

        req_id = choose_request_id(Headers(scope=scope), self.header_name)
        scope.setdefault("state", {})["request_id"] = req_id
        name_bytes = self.header_name.encode("latin-1")

        async def _send_wrapper(message: Message) -> None:
            if message.get("type") == "http.response.start":
                raw = message.get("headers", [])
                message["headers"] = [(k, v) for (k, v) in raw if k.lower() != name_bytes.lower()]
                message["headers"].append((name_bytes, req_id.encode("latin-1")))
            await send(message)

        with logger.contextualize(request_id=req_id):
            await self.app(scope, receive, _send_wrapper)


def choose_request_id(headers: Headers, header_name: str = HEADER_NAME) -> str:
    """Return the incoming id when it is a well-formed UUIDv4, else a fresh one."""
    incoming = (headers.get(header_name) or headers.get("X-Correlation-ID") or "").strip()
    if 0 < len(incoming) <= MAX_ID_LENGTH and _UUID_V4_RE.fullmatch(incoming):
        return str(uuid.UUID(incoming))
    return str(uuid.uuid4())


def get_request_id(request) -> str:
    """Current request id from `request.state`, or `""`."""
    return getattr(getattr(request, "state", object()), "request_id", "") or ""


__all__ = ["RequestIDMiddleware", "choose_request_id", "get_request_id"]
