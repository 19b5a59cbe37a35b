"""Shared test fixtures for taskdash tests.

This module provides common fixtures used across all test modules:
- Database isolation with a temporary SQLite file per test
- A TaskService bound to that database
- Factories for domain Task objects

Usage:
    async def test_something(task_service):
        # task_service writes to a database that is thrown away afterwards
        ...
"""

import os
import tempfile
from collections.abc import AsyncGenerator
from datetime import datetime, timezone

# Point the application engine at a scratch database before taskdash is imported
_SCRATCH_DIR = tempfile.mkdtemp(prefix="taskdash-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_SCRATCH_DIR}/app.db"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from taskdash.db.session import build_engine, build_sessionmaker, init_db  # noqa: E402
from taskdash.features.tasks.domain import Task, TaskStatus  # noqa: E402
from taskdash.features.tasks.service import TaskService  # noqa: E402


# ─────────────────────────────────────────────────────────────────────────────
# Database Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def database_url(tmp_path) -> str:
    """URL of a SQLite file that only lives for one test"""
    return f"sqlite+aiosqlite:///{tmp_path / 'taskdash.db'}"


@pytest_asyncio.fixture
async def db_engine(database_url) -> AsyncGenerator[AsyncEngine, None]:
    """Engine with all tables created. NullPool keeps connections loop-local."""
    engine = build_engine(database_url, poolclass=NullPool)
    await init_db(engine)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = build_sessionmaker(db_engine)
    async with session_factory() as session:
        yield session


@pytest.fixture
def task_service(db_session) -> TaskService:
    return TaskService(db_session)


# ─────────────────────────────────────────────────────────────────────────────
# Domain Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def make_task():
    """Factory for domain Task objects with sensible defaults"""
    counter = {"id": 0}

    def _make(**overrides) -> Task:
        counter["id"] += 1
        values = {
            "id": counter["id"],
            "title": f"Task {counter['id']}",
            "status": TaskStatus.UNRATED,
            "cognitive_density": 1,
            "estimated_hours": 1.0,
            "created_at": datetime(2025, 7, 1, 12, counter["id"] % 60, tzinfo=timezone.utc),
        }
        values.update(overrides)
        return Task(**values)

    return _make
