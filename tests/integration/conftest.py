"""Fixtures for exercising the HTTP API end to end"""

import asyncio

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import NullPool

from taskdash.db import get_db
from taskdash.db.session import build_engine, build_sessionmaker, init_db
from taskdash.main import app


@pytest.fixture
def test_client(database_url):
    """
    TestClient whose requests hit a throwaway SQLite database.

    Each request gets its own session, the same as in production.
    """
    engine = build_engine(database_url, poolclass=NullPool)
    asyncio.run(init_db(engine))
    session_factory = build_sessionmaker(engine)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    try:
        with TestClient(app) as client:
            yield client
    finally:
        app.dependency_overrides.clear()
        asyncio.run(engine.dispose())
