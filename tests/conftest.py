"""Shared pytest fixtures for rankwatch tests."""

import sys
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

# Ensure project root is on sys.path so 'rankwatch' is importable.
_project_root = str(Path(__file__).resolve().parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)


class FakeProvider:
    """Stand-in for the SERP client: canned result lists or exceptions per query."""

    def __init__(self, responses=None):
        self.responses = responses or {}
        self.calls: list[str] = []

    async def fetch_results(self, query):
        self.calls.append(query)
        outcome = self.responses.get(query, [])
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture(autouse=True)
def _reset_db_engine():
    """Autouse fixture: reset the global DB engine before and after every test.

    This prevents cross-test pollution when tests create their own in-memory
    databases.
    """
    from rankwatch.database import reset_engine
    reset_engine()
    yield
    reset_engine()


@pytest.fixture()
def test_db():
    """Provide an in-memory SQLite database with all tables created.

    Yields a database URL string. The engine is automatically torn down
    after the test by the autouse ``_reset_db_engine`` fixture.
    """
    from rankwatch.database import reset_engine, init_db
    reset_engine()
    db_url = "sqlite:///:memory:"
    init_db(database_url=db_url, echo=False)
    yield db_url


@pytest.fixture()
def store(test_db):
    from rankwatch.rank_tracker.store import RankStore
    return RankStore()


@pytest.fixture()
def settings():
    from rankwatch.config import Settings
    return Settings(api_key="test-key", database_url="sqlite:///:memory:")


@pytest.fixture()
def fake_provider():
    """Factory for :class:`FakeProvider` instances."""
    return FakeProvider


@pytest.fixture()
def no_sleep():
    """Async sleep replacement that records pacing delays without waiting."""
    return AsyncMock(return_value=None)
