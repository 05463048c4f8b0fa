"""User-authenticated routers, mounted under `/user`."""

from .family import router as family_router
from .resume import router as resume_router
from .watch_history import router as watch_history_router

__all__ = ["family_router", "resume_router", "watch_history_router"]
