# tests/conftest.py
"""
Global test bootstrap
- Test environment (secrets, throwaway SQLite database) set BEFORE the app imports
- A fresh mock Redis client mounted into `redis_wrapper` for every test
- Pulls in the db/app/user fixtures
"""

from __future__ import annotations

import os
import tempfile
import warnings

import pytest

# ──────────────────────────────────────────────────────────────────────────────
# 🌱 Test env (must precede any `app.*` import: settings are read at import)
# ──────────────────────────────────────────────────────────────────────────────
_DB_DIR = tempfile.mkdtemp(prefix="reelnest-tests-")
os.environ["DATABASE_URL_OVERRIDE"] = f"sqlite+aiosqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-change-me-0123456789")
os.environ.setdefault("POSTGRES_PASSWORD", "test")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")
os.environ.setdefault("TMDB_API_KEY", "test-tmdb-key")
os.environ.setdefault("ENV", "development")
os.environ.setdefault("LOG_TO_FILE", "0")
os.environ.setdefault("MAINTENANCE_SCHEDULER", "false")

from sqlalchemy.exc import SAWarning

from app.core.redis_client import redis_wrapper
from tests.fixtures.mocks.redis import MockRedisClient

warnings.filterwarnings("ignore", category=SAWarning)

# ──────────────────────────────────────────────────────────────────────────────
# 📦 Pull in the rest of the fixtures (db, app, users)
# ──────────────────────────────────────────────────────────────────────────────
from tests.fixtures.db import *      # noqa: F401,F403,E402
from tests.fixtures.app import *     # noqa: F401,F403,E402
from tests.fixtures.users import *   # noqa: F401,F403,E402


# ──────────────────────────────────────────────────────────────────────────────
# 🔌 Redis fixture: fresh mock per test, detached afterwards
# ──────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def redis_client():
    """The mock behind `redis_wrapper`; inspect or seed it directly in tests."""
    client = MockRedisClient()
    redis_wrapper._client = client
    yield client
    redis_wrapper._client = None


@pytest.fixture()
def redis_down():
    """Simulate a deployment where Redis never connected."""
    redis_wrapper._client = None
    yield


# ──────────────────────────────────────────────────────────────────────────────
# 📝 Capture app logs (stdlib loggers are intercepted into loguru)
# ──────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def log_messages():
    from loguru import logger

    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
