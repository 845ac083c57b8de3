# FILE: tests/conftest.py
"""
Pytest configuration for the decision engine test suite.

Configures:
- pytest-asyncio for async test support
- shared fixtures: in-memory store, SQLite-backed store, fixed clock
"""
import sys
from pathlib import Path
from datetime import datetime, timezone

_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import pytest

# Configure pytest-asyncio to use auto mode
pytest_plugins = ["pytest_asyncio"]


FIXED_NOW = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    """Mutable clock for freshness tests."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def memory_store():
    from decision_engine.store import InMemoryDecisionStore
    return InMemoryDecisionStore()


@pytest.fixture
def sql_session_factory(tmp_path):
    """File-backed SQLite so worker threads share one database."""
    from sqlalchemy.orm import sessionmaker
    from decision_engine.db import make_engine, init_db

    engine = make_engine(f"sqlite:///{tmp_path / 'decisions.db'}")
    init_db(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def sql_store(sql_session_factory):
    from decision_engine.store import SqlDecisionStore
    return SqlDecisionStore(sql_session_factory)
