"""
FlashVault Backend — Test Configuration (conftest.py)
=======================================================

What:  Shared pytest fixtures for the whole suite.
How:   Service tests run against a real SQLite database (aiosqlite) in a
       temp directory so savepoints, constraints and cascades behave as
       they do in production. Route tests drive the ASGI app through httpx
       with the database and access-gate dependencies overridden.

Fixture Hierarchy:
    Function-scoped:
    ├── db_engine:        fresh SQLite file with all tables created
    ├── session_factory:  async_sessionmaker bound to db_engine
    ├── db_session:       one open AsyncSession
    ├── mock_db_session:  AsyncMock session for failure injection
    ├── test_client:      authenticated client (user "user-1")
    └── anon_client:      client with the real access gate
"""

import os

# Must be set before anything imports flashvault.config
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["IDENTITY_PROVIDER_URL"] = "http://identity.test"
os.environ["IDENTITY_PROVIDER_API_KEY"] = "test-anon-key"
os.environ["AUTH_RETRY_MIN_WAIT"] = "0"
os.environ["AUTH_RETRY_MAX_WAIT"] = "0"
os.environ["BULK_CREATE_MANUFACTURERS"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from flashvault.auth import get_current_user
from flashvault.database import Base, get_db_session
from flashvault.services.identity import AuthenticatedUser

import flashvault.models  # noqa: F401

TEST_USER_ID = "user-1"


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """
    SQLite engine with working SAVEPOINTs and foreign keys.

    pysqlite's own transaction handling swallows SAVEPOINT semantics, so the
    driver is put in autocommit mode and SQLAlchemy emits BEGIN itself.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'flashvault.db'}")

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_db_session():
    """
    AsyncMock session for injecting database failures.

    Usage:
        mock_db_session.execute.side_effect = OperationalError("SELECT", {}, Exception())
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.add = MagicMock()
    return session


# ══════════════════════════════════════════════════════════════════════════
# HTTP Client Fixtures
# ══════════════════════════════════════════════════════════════════════════

def _override_db(session_factory):
    async def _get_test_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
    return _get_test_session


@pytest_asyncio.fixture
async def test_client(session_factory):
    """
    Client whose requests are all authenticated as TEST_USER_ID.

    Usage:
        async def test_list(test_client):
            response = await test_client.get("/api/flashlights")
    """
    from flashvault.main import app

    async def _fake_user() -> AuthenticatedUser:
        return AuthenticatedUser(id=TEST_USER_ID, email="collector@example.com")

    app.dependency_overrides[get_db_session] = _override_db(session_factory)
    app.dependency_overrides[get_current_user] = _fake_user
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def anon_client(session_factory):
    """Client that goes through the real access gate."""
    from flashvault.main import app

    app.dependency_overrides[get_db_session] = _override_db(session_factory)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


# ══════════════════════════════════════════════════════════════════════════
# Sample Data
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def sample_flashlight():
    """A complete, valid flashlight record as a client would post it."""
    return {
        "model": "E75",
        "manufacturer_name": "Acebeam",
        "finish": "Black",
        "finish_group": "Anodized",
        "battery_type": "21700",
        "emitters": [
            {"type": "519A", "cct": "5000K", "count": 4, "color": "White"},
            {"type": "XP-E2", "count": 1, "color": "Red"},
        ],
        "driver": "Boost",
        "ui": "Ramping",
        "anduril": False,
        "form_factors": ["Tube"],
        "ip_rating": "IP68",
        "special_features": ["USB-C"],
        "notes": "EDC",
        "purchase_date": "2024",
        "status": "Owned",
        "shipping_status": "Received",
    }
