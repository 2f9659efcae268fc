"""Test configuration and fixtures."""

import itertools
import os
from datetime import date, time, timedelta
from decimal import Decimal

# Settings are read on first import of the application package
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"
os.environ["ENABLE_WORKERS"] = "false"
os.environ["ENABLE_LEGACY_API"] = "true"
os.environ["JWT_SECRET"] = "test-identity-provider-secret"

import jwt  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from rail_reservation.core.config import settings  # noqa: E402
from rail_reservation.core.database import Base, get_db  # noqa: E402
from rail_reservation.core.locks import train_locks  # noqa: E402
from rail_reservation.models import *  # noqa: F403,E402 - Import all models
from rail_reservation.schemas.train import CreateTrainRequest  # noqa: E402
from rail_reservation.services.train_service import TrainService  # noqa: E402

# Test database URL (in-memory SQLite for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

USER_ID = "user-1"
OTHER_USER_ID = "user-2"
ADMIN_ID = "admin-1"

_train_numbers = itertools.count(10001)


def make_token(user_id: str = USER_ID, roles: list[str] | None = None, **claims) -> str:
    """Sign a token the way the identity provider does."""
    payload = {"sub": user_id, "email": f"{user_id}@example.com", **claims}
    if roles:
        payload["roles"] = roles
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")


def auth_headers(user_id: str = USER_ID, roles: list[str] | None = None) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, roles)}"}


def tomorrow() -> date:
    return date.today() + timedelta(days=1)


def train_request(total_seats: int = 2, **overrides) -> CreateTrainRequest:
    data = {
        "train_number": str(next(_train_numbers)),
        "train_name": "Rajdhani Express",
        "source_station": "New Delhi",
        "destination_station": "Mumbai Central",
        "departure_time": time(8, 0),
        "arrival_time": time(12, 0),
        "total_seats": total_seats,
        "price": Decimal("1500.00"),
    }
    data.update(overrides)
    return CreateTrainRequest(**data)


async def create_schema(engine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture(autouse=True)
def reset_train_locks():
    """Locks bind to the event loop that first waits on them; every test gets a new loop."""
    train_locks.reset()
    yield
    train_locks.reset()


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    await create_schema(engine)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_session(test_engine):
    """Create a test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def file_session_factory(tmp_path):
    """
    Session factory over a database file.

    Concurrency tests open one session per task; an in-memory database with a
    static pool would make them share a single connection.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'reservations.db'}",
        echo=False,
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    await create_schema(engine)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def make_train(test_session):
    """Factory creating a train with all seats available."""

    async def _make_train(total_seats: int = 2, **overrides):
        return await TrainService(test_session).create_train(train_request(total_seats, **overrides))

    return _make_train


@pytest_asyncio.fixture(scope="function")
async def test_app(test_session):
    """Create the application with its database dependency bound to the test session."""
    from rail_reservation.main import create_app

    app = create_app()

    async def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db

    yield app

    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """Create a test HTTP client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def user_headers():
    return auth_headers(USER_ID)


@pytest.fixture
def other_user_headers():
    return auth_headers(OTHER_USER_ID)


@pytest.fixture
def admin_headers():
    return auth_headers(ADMIN_ID, roles=[settings.admin_role])


@pytest.fixture
def sample_booking_data():
    """Booking form payload without the train."""
    return {
        "passenger_name": "Asha Verma",
        "passenger_age": 34,
        "passenger_gender": "female",
        "travel_date": tomorrow().isoformat(),
    }
