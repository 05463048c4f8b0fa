from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class CronRunOut(BaseModel):
    """Outcome of one maintenance batch."""

    success: bool = True
    expired_count: int
    timestamp: datetime
