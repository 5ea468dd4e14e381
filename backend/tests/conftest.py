import os
from datetime import date

# Settings are read at import time; the app engine is never connected in these tests.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./.pytest-reservations.db")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from tenacity import wait_none

from backend.app.db.models import Base
from backend.app.db.session import build_engine, build_sessionmaker, get_session
from backend.app.main import app
from backend.app.routers.dependencies import get_reservation_service
from backend.app.services.reservations import ReservationService


TODAY = date(2026, 11, 2)


@pytest.fixture
def today() -> date:
    return TODAY


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'reservations.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_sessionmaker(engine)


@pytest.fixture
def service(session_factory, today) -> ReservationService:
    return ReservationService(
        session_factory,
        today=lambda: today,
        max_tables=5,
        max_advance_days=30,
        retry_attempts=3,
        retry_wait=wait_none(),
    )


@pytest_asyncio.fixture
async def client(service, session_factory):
    async def override_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_reservation_service] = lambda: service
    app.dependency_overrides[get_session] = override_session
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
    finally:
        app.dependency_overrides.clear()
