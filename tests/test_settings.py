# tests/test_settings.py

"""
🛠️ Test Settings:
Points every test DB connection at the throwaway SQLite file configured in
`tests/conftest.py` (via `DATABASE_URL_OVERRIDE`).
"""

from app.core.config import Settings


class TestSettings(Settings):
    __test__ = False

    @property
    def TEST_DATABASE_URL(self) -> str:
        """Async test DSN; refuses to run against anything but SQLite."""
        url = self.ASYNC_DATABASE_URL
        if not url.startswith("sqlite+aiosqlite://"):
            raise RuntimeError(f"Refusing to run tests against {url!r}")
        return url


# 👇 Used in all test DB fixtures
settings = TestSettings()
