"""
Pytest fixtures for test database, client, and authentication.

Uses a SQLite file database created and dropped around every test, and
disables Redis so ride search always hits the database.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./unipool_test.db")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import datetime, timezone, timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.pool import NullPool
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from unipool.main import app
from unipool.db.base import Base
from unipool.db.session import get_db
from unipool.core.config import get_settings
from unipool.core.security import create_access_token, hash_password
from unipool.models.user import User
from unipool.models.ride import Ride

# NullPool: every test runs on its own event loop, so connections must not be reused
test_engine = create_async_engine(get_settings().DATABASE_URL, echo=False, poolclass=NullPool)
TestSessionLocal = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create tables, yield session, then drop tables for isolation."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB dependency with the test session."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _make_user(db_session: AsyncSession, email: str, name: str, role: str) -> User:
    user = User(
        email=email,
        name=name,
        role=role,
        hashed_password=hash_password("testpassword123"),
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


def _headers_for(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(data={'sub': str(user.id)})}"}


@pytest_asyncio.fixture
async def driver(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "driver@uni.edu", "Dana Driver", "driver")


@pytest_asyncio.fixture
async def passenger(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "passenger@uni.edu", "Pat Passenger", "passenger")


@pytest_asyncio.fixture
async def other_passenger(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "other@uni.edu", "Olly Other", "passenger")


@pytest_asyncio.fixture
async def driver_headers(driver: User) -> dict:
    return _headers_for(driver)


@pytest_asyncio.fixture
async def passenger_headers(passenger: User) -> dict:
    return _headers_for(passenger)


@pytest_asyncio.fixture
async def other_passenger_headers(other_passenger: User) -> dict:
    return _headers_for(other_passenger)


def _ride_payload(**overrides) -> dict:
    """JSON body for POST /rides/."""
    payload = {
        "source_lat": 31.4700,
        "source_lng": 74.4111,
        "source_address": "North Campus Gate",
        "dest_lat": 31.5204,
        "dest_lng": 74.3587,
        "dest_address": "Liberty Market",
        "departure_time": (datetime.now(timezone.utc) + timedelta(days=2)).isoformat(),
        "seats_total": 3,
        "cost_per_seat": 250,
    }
    payload.update(overrides)
    return payload


@pytest_asyncio.fixture
async def test_ride(db_session: AsyncSession, driver: User) -> Ride:
    """An active ride with 3 free seats."""
    ride = Ride(
        driver_id=driver.id,
        source_lat=31.4700,
        source_lng=74.4111,
        source_address="North Campus Gate",
        dest_lat=31.5204,
        dest_lng=74.3587,
        dest_address="Liberty Market",
        departure_time=datetime.now(timezone.utc) + timedelta(days=2),
        seats_total=3,
        seats_available=3,
        cost_per_seat=250,
    )
    db_session.add(ride)
    await db_session.commit()
    await db_session.refresh(ride)
    return ride


@pytest.fixture
def ride_payload():
    """Factory for POST /rides/ bodies."""
    return _ride_payload
