"""
Pytest fixtures for test database, client, authentication and room inventory.

Each test gets a fresh schema. The default database is in-memory SQLite;
set TEST_DATABASE_URL to a PostgreSQL URL to run against the real engine
(this also enables the concurrent double-booking test).
"""

import os
from datetime import date, timedelta
from decimal import Decimal
from typing import AsyncGenerator

# Must be set before the app reads its settings
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite://")
os.environ["REDIS_ENABLED"] = "false"
os.environ.setdefault("DATABASE_URL", TEST_DATABASE_URL)

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.db.base import Base
from app.db.session import get_db
from app.core.security import create_access_token, hash_password
from app.models import Booking, BookingRoom, Room, RoomCategory, User
from app.services.availability_service import utc_today

IS_POSTGRES = TEST_DATABASE_URL.startswith("postgresql")


def stay(offset_days: int, nights: int) -> tuple[date, date]:
    """A (check_in, check_out) pair starting `offset_days` from today."""
    check_in = utc_today() + timedelta(days=offset_days)
    return check_in, check_in + timedelta(days=nights)


@pytest.fixture(scope="session")
def password_hash() -> str:
    return hash_password("testpassword123")


@pytest_asyncio.fixture(scope="function")
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Create tables on a fresh engine, then drop them after the test."""
    if IS_POSTGRES:
        engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    else:
        engine = create_async_engine(
            TEST_DATABASE_URL,
            echo=False,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


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


async def _make_user(db: AsyncSession, email: str, role: str, password_hash: str) -> User:
    user = User(
        email=email,
        first_name=email.split("@")[0].title(),
        last_name="Tester",
        hashed_password=password_hash,
        role=role,
    )
    db.add(user)
    await db.commit()
    return user


@pytest_asyncio.fixture
async def guest(db_session: AsyncSession, password_hash: str) -> User:
    return await _make_user(db_session, "guest@example.com", "guest", password_hash)


@pytest_asyncio.fixture
async def other_guest(db_session: AsyncSession, password_hash: str) -> User:
    return await _make_user(db_session, "other@example.com", "guest", password_hash)


@pytest_asyncio.fixture
async def receptionist(db_session: AsyncSession, password_hash: str) -> User:
    return await _make_user(db_session, "desk@example.com", "receptionist", password_hash)


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession, password_hash: str) -> User:
    return await _make_user(db_session, "admin@example.com", "admin", password_hash)


def _headers(user: User) -> dict:
    token = create_access_token(data={"sub": str(user.id), "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def guest_headers(guest: User) -> dict:
    return _headers(guest)


@pytest_asyncio.fixture
async def other_guest_headers(other_guest: User) -> dict:
    return _headers(other_guest)


@pytest_asyncio.fixture
async def staff_headers(receptionist: User) -> dict:
    return _headers(receptionist)


@pytest_asyncio.fixture
async def admin_headers(admin: User) -> dict:
    return _headers(admin)


@pytest_asyncio.fixture
async def categories(db_session: AsyncSession) -> dict[str, RoomCategory]:
    """Budget 89.99 (1 guest), standard 90.00 (2 guests), deluxe 150.00 (4 guests)."""
    created = {
        "budget": RoomCategory(name="Budget", base_price=Decimal("89.99"), max_occupancy=1),
        "standard": RoomCategory(
            name="Standard", base_price=Decimal("90.00"), max_occupancy=2, amenities=["wifi"]
        ),
        "deluxe": RoomCategory(
            name="Deluxe", base_price=Decimal("150.00"), max_occupancy=4, amenities=["wifi", "minibar"]
        ),
    }
    db_session.add_all(created.values())
    await db_session.commit()
    return created


@pytest_asyncio.fixture
async def room_ids(db_session: AsyncSession, categories) -> dict[str, int]:
    """Room ids by name: R1 standard, R2 deluxe, R3 standard, B1 budget."""
    rooms = {
        "R1": Room(room_number="101", category=categories["standard"], floor=1),
        "R2": Room(room_number="201", category=categories["deluxe"], floor=2),
        "R3": Room(room_number="102", category=categories["standard"], floor=1),
        "B1": Room(room_number="001", category=categories["budget"], floor=1),
    }
    db_session.add_all(rooms.values())
    await db_session.commit()
    return {name: room.id for name, room in rooms.items()}


@pytest.fixture
def add_booking(db_session: AsyncSession):
    """Insert a booking row directly, bypassing the lifecycle checks."""

    async def _add(user_id: int, rooms: list[int], check_in: date, check_out: date,
                   status: str = "confirmed") -> int:
        booking = Booking(
            user_id=user_id,
            check_in_date=check_in,
            check_out_date=check_out,
            total_amount=Decimal("0.00"),
            status=status,
            guest_count=1,
        )
        db_session.add(booking)
        await db_session.flush()
        for room_id in rooms:
            db_session.add(BookingRoom(booking_id=booking.id, room_id=room_id, nightly_rate=Decimal("0.00")))
        await db_session.commit()
        return booking.id

    return _add
