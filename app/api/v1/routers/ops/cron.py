
# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ ReelNest · Ops API (cron-triggered maintenance)                          ║
# ╠──────────────────────────────────────────────────────────────────────────╣
# ║  - POST /cron/expire-trials   → revoke ended trials, dissolve families   ║
# ║  - POST /cron/expire-invites  → mark stale pending invites expired       ║
# ╠──────────────────────────────────────────────────────────────────────────╣
# ║ Auth: `Authorization: Bearer <CRON_SECRET>` in every environment.        ║
# ║ A production deployment without `CRON_SECRET` answers 500.               ║
# ╚══════════════════════════════════════════════════════════════════════════╝
"""Maintenance triggers for an external scheduler."""

import logging

from fastapi import APIRouter, Depends, Request, status

from app.api.http_utils import bearer_token, json_no_store, secrets_match
from app.core.config import settings
from app.core.exceptions import AppException
from app.schemas.ops import CronRunOut
from app.services.family_service import expire_family_invites
from app.services.trial_service import expire_trials
from app.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["Ops"])


def require_cron_secret(request: Request) -> None:
    """
    Guard for cron endpoints.

    Raises
    ------
    AppException
        500 when production runs without `CRON_SECRET`; 401 on a missing or
        wrong bearer.
    """
    expected = settings.cron_secret.strip()
    if settings.is_production and not expected:
        logger.error("CRON_SECRET is not configured in production")
        raise AppException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message="Server misconfiguration",
            reason="server_misconfiguration",
        )
    if not secrets_match(bearer_token(request), expected):
        logger.warning("Unauthorized cron call to %s", request.url.path)
        raise AppException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            message="Unauthorized",
            reason="unauthorized",
        )


@router.post(
    "/expire-trials",
    response_model=CronRunOut,
    dependencies=[Depends(require_cron_secret)],
    summary="Expire ended trials",
)
async def cron_expire_trials():
    count = await expire_trials()
    logger.info("Cron expire-trials processed %s user(s)", count)
    return json_no_store(CronRunOut(expired_count=count, timestamp=utcnow()))


@router.post(
    "/expire-invites",
    response_model=CronRunOut,
    dependencies=[Depends(require_cron_secret)],
    summary="Expire stale family invites",
)
async def cron_expire_invites():
    count = await expire_family_invites()
    logger.info("Cron expire-invites marked %s invite(s)", count)
    return json_no_store(CronRunOut(expired_count=count, timestamp=utcnow()))


__all__ = ["router", "require_cron_secret"]
