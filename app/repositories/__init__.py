"""Repositories: the SQL boundary between services and the ORM."""

from app.repositories.watch_history import (
    SQLWatchHistoryRepository,
    WatchHistoryRepositoryProtocol,
    get_watch_history_repository,
)

__all__ = [
    "SQLWatchHistoryRepository",
    "WatchHistoryRepositoryProtocol",
    "get_watch_history_repository",
]
