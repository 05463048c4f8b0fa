"""Operational routers (maintenance triggers), mounted under `/ops`."""

from .cron import router as cron_router

__all__ = ["cron_router"]
