"""Service test fixtures — async DB, operation context and FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use the test DB session
    - db_manager patched so the readiness probe sees the test engine
    - ctx uses a pinned clock: timestamps (and so fingerprints) are reproducible

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for service and
      route tests (no PostgreSQL-specific features are exercised)
"""

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from httpx import ASGITransport, AsyncClient

from composting_belt.core.operation_context import OperationContext
from composting_belt.db.base import Base
from composting_belt.infrastructure.database import get_db, DatabaseSessionManager
import composting_belt.infrastructure.database as db_module
from composting_belt.main import app
from composting_belt.services.batch_registry import BatchRegistry
from composting_belt.services.belt_service import BeltService

from tests.services.seed import (
    FACILITY_CODE, FACILITY_LAT, FACILITY_LON, FIXED_NOW,
)


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def ctx():
    return OperationContext(request_id="test-request", clock=lambda: FIXED_NOW)


@pytest.fixture
async def client(test_engine, test_session_factory):
    """FastAPI test client with DB dependency overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


@pytest.fixture
async def facility(test_db, ctx):
    return await BatchRegistry(test_db, ctx).create_facility(
        code=FACILITY_CODE, name="Pinheiros Hub",
        latitude=FACILITY_LAT, longitude=FACILITY_LON,
    )


@pytest.fixture
def make_batch(test_db, ctx, facility):
    """Factory: intake a batch and optionally place it at a station directly."""
    async def _make(code: str, initial_mass: float = 100.0, station: int = 1, **kwargs):
        batch = await BeltService(test_db, ctx).intake(
            code=code, facility_code=FACILITY_CODE, initial_mass=initial_mass,
            created_by=kwargs.pop("created_by", "operator-1"), **kwargs,
        )
        if station != 1:
            batch.current_station = station
            batch.current_week = station
            await test_db.commit()
        return batch
    return _make
