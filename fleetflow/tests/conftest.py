"""
Pytest configuration and shared fixtures for the FleetFlow ledger test suite.

This module provides:
- Database fixtures (in-memory SQLite for fast tests)
- Ledger / store fixtures bound to a private lock registry
- FastAPI async client with the database dependency overridden
- Vehicle and driver factories
"""

from datetime import date, timedelta
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import fleetflow.models  # noqa: F401  (registers every table)
from fleetflow.core.db import Base, enable_sqlite_foreign_keys, get_db
from fleetflow.core.locks import KeyedLock
from fleetflow.main import app
from fleetflow.services.ledger import FleetLedger
from fleetflow.services.store import EntityStore


# Test Database Configuration
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TODAY = date.today()
VALID_EXPIRY = TODAY + timedelta(days=365)
EXPIRED = TODAY - timedelta(days=30)


@pytest_asyncio.fixture
async def async_engine():
    """Create async engine for testing with in-memory SQLite."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )
    enable_sqlite_foreign_keys(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine):
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def async_db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for testing."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def locks() -> KeyedLock:
    return KeyedLock()


@pytest.fixture
def make_ledger(locks):
    """Build ledgers that share one private lock registry, like request handlers do."""
    def _make(session, strict: bool = True, clock=None) -> FleetLedger:
        kwargs = {"locks": locks, "strict": strict}
        if clock is not None:
            kwargs["clock"] = clock
        return FleetLedger(session, **kwargs)
    return _make


@pytest.fixture
def ledger(async_db_session, make_ledger) -> FleetLedger:
    return make_ledger(async_db_session)


@pytest.fixture
def permissive_ledger(async_db_session, make_ledger) -> FleetLedger:
    return make_ledger(async_db_session, strict=False)


@pytest.fixture
def store(async_db_session) -> EntityStore:
    return EntityStore(async_db_session)


# Test Data Factories
def _detached(store, record):
    # A rolled-back transition expires everything in the session; detached
    # fixtures keep their loaded attributes readable from async test code.
    store.db.expunge(record)
    return record


@pytest.fixture
def make_vehicle(store):
    counter = {"n": 0}

    async def _make(**overrides):
        counter["n"] += 1
        fields = {
            "name": f"Trailer Truck {counter['n']}",
            "license_plate": f"MH 01 AB {1000 + counter['n']}",
            "type": "Truck",
            "max_payload": 20000,
            "odometer": 50000,
            "acquisition_cost": 5000000,
        }
        fields.update(overrides)
        return _detached(store, await store.create("vehicle", **fields))
    return _make


@pytest.fixture
def make_driver(store):
    counter = {"n": 0}

    async def _make(**overrides):
        counter["n"] += 1
        fields = {
            "name": f"Driver {counter['n']}",
            "license_no": f"DL-{10000 + counter['n']}",
            "license_expiry": VALID_EXPIRY,
        }
        fields.update(overrides)
        return _detached(store, await store.create("driver", **fields))
    return _make


@pytest_asyncio.fixture
async def test_vehicle(make_vehicle):
    return await make_vehicle(name="Trailer Truck", license_plate="MH 01 AB 1234")


@pytest_asyncio.fixture
async def test_driver(make_driver):
    return await make_driver(name="John Doe", license_no="DL-12345")


@pytest_asyncio.fixture
async def async_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client; every request gets its own session, like production."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# Common Test Doubles
@pytest.fixture
def mock_async_session():
    """Provide a reusable AsyncSession-like test double.

    - `begin()` returns an async context manager that commits on exit
    - `in_transaction()` reports an idle session
    - `add` is a `MagicMock` (synchronous)
    - `flush`, `commit`, `execute`, `get` are `AsyncMock`
    Tests can override `execute.side_effect` as needed.
    """
    session = AsyncMock()

    class DummyAsyncCtx:
        def __init__(self, sess):
            self.sess = sess
        async def __aenter__(self):
            return None
        async def __aexit__(self, exc_type, exc, tb):
            # mimic commit on successful context exit
            if exc_type is None:
                await self.sess.commit()
            else:
                await self.sess.rollback()
            return False

    session.begin = lambda: DummyAsyncCtx(session)
    session.in_transaction = MagicMock(return_value=False)
    session.add = MagicMock()

    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()

    return session
