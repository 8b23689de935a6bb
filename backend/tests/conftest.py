"""Pytest configuration and fixtures."""

import os

# Configure the app for tests BEFORE any subway imports
# This must be done before subway.core.config loads settings
os.environ["DEBUG"] = "true"
os.environ["SECRET_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["OTEL_ENABLED"] = "false"
os.environ["ALLOWED_ORIGINS"] = "http://localhost:3000"

from collections.abc import AsyncGenerator, Sequence

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from subway.core.database import enable_sqlite_foreign_keys, get_db
from subway.main import app
from subway.models import Base, Line, LineSection, Station

from tests.helpers.types import LineFactory, StationFactory


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """
    Create an in-memory SQLite database with the full schema.

    StaticPool keeps the single in-memory connection alive for the whole
    test, so every session sees the same database.

    Yields:
        AsyncEngine bound to a fresh database
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    enable_sqlite_foreign_keys(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """
    Create a database session for one test.

    Args:
        db_engine: Per-test database engine

    Yields:
        Async SQLAlchemy session
    """
    session_factory = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session


@pytest.fixture
async def async_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient]:
    """
    FastAPI asynchronous HTTP client using the test database session.

    Yields:
        Async HTTP client with ASGI transport
    """

    async def override_get_db() -> AsyncGenerator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


# Test data factories


@pytest.fixture
def make_station(db_session: AsyncSession) -> StationFactory:
    """Factory fixture that persists a station with the given name."""

    async def _make_station(name: str) -> Station:
        station = Station(name=name)
        db_session.add(station)
        await db_session.commit()
        await db_session.refresh(station)
        return station

    return _make_station


@pytest.fixture
async def stations(make_station: StationFactory) -> list[Station]:
    """Six stations, in ID order: Gangnam, Yeoksam, Seolleung, Samseong, Jamsil, Sindorim."""
    names = ["Gangnam", "Yeoksam", "Seolleung", "Samseong", "Jamsil", "Sindorim"]
    return [await make_station(name) for name in names]


@pytest.fixture
def make_line(db_session: AsyncSession) -> LineFactory:
    """
    Factory fixture that persists a line running through the given stations.

    Sections are inserted in reverse path order so tests never depend on
    insertion order matching path order.
    """

    async def _make_line(
        name: str,
        color: str,
        path: Sequence[Station],
        distances: Sequence[int],
    ) -> Line:
        assert len(distances) == len(path) - 1, "a line needs one distance per pair of stations"

        line = Line(name=name, color=color)
        db_session.add(line)
        await db_session.flush()

        pairs = list(zip(path, path[1:], distances, strict=False))
        for up, down, distance in reversed(pairs):
            db_session.add(
                LineSection(
                    line_id=line.id,
                    up_station_id=up.id,
                    down_station_id=down.id,
                    distance=distance,
                )
            )
        await db_session.commit()
        await db_session.refresh(line)
        return line

    return _make_line
