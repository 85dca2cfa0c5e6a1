"""
Pytest fixtures for test database, client, and subject tokens.

Each test gets a fresh in-memory SQLite database (aiosqlite + StaticPool) so
every session in the test shares one connection and one schema. Redis is
disabled; catalog reads fall through to the database.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401 - registers every table on Base.metadata
from app.core.security import create_access_token
from app.db.base import Base
from app.db.session import get_db
from app.main import app
from app.models.gym_class import GymClass
from app.models.plan import Plan
from app.models.reward import Reward

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

SUBJECT_ID = 1
OTHER_SUBJECT_ID = 2


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose requests each get their own session on the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict:
    token = create_access_token(data={"sub": str(SUBJECT_ID)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_auth_headers() -> dict:
    token = create_access_token(data={"sub": str(OTHER_SUBJECT_ID)})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def monthly_plan(db_session: AsyncSession) -> Plan:
    plan = Plan(
        name="Monthly Access",
        price=Decimal("49.00"),
        cadence="monthly",
        features="Gym floor, Locker, Group classes",
        is_visible=True,
    )
    db_session.add(plan)
    await db_session.commit()
    await db_session.refresh(plan)
    return plan


@pytest_asyncio.fixture
async def lifetime_plan(db_session: AsyncSession) -> Plan:
    plan = Plan(name="Founder", price=Decimal("999.00"), cadence="lifetime", is_visible=False)
    db_session.add(plan)
    await db_session.commit()
    await db_session.refresh(plan)
    return plan


@pytest_asyncio.fixture
async def water_bottle(db_session: AsyncSession) -> Reward:
    reward = Reward(name="Water Bottle", image="rewards/bottle.png", cost_points=40)
    db_session.add(reward)
    await db_session.commit()
    await db_session.refresh(reward)
    return reward


@pytest_asyncio.fixture
async def yoga_class(db_session: AsyncSession) -> GymClass:
    gym_class = GymClass(name="Morning Yoga", duration_minutes=60, difficulty="beginner")
    db_session.add(gym_class)
    await db_session.commit()
    await db_session.refresh(gym_class)
    return gym_class


@pytest.fixture
def next_week() -> datetime:
    return (datetime.now(timezone.utc) + timedelta(days=7)).replace(
        hour=9, minute=0, second=0, microsecond=0
    )
