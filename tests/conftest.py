"""
Pytest configuration for the application
"""
import datetime as dt
import os
from decimal import Decimal
from typing import AsyncGenerator, Dict, Optional
from uuid import UUID, uuid4

import httpx
import jwt
import pytest
import pytest_asyncio
from asgi_lifespan import LifespanManager
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from src.core.config import settings
from src.db.base import Base
from src.db.models import PushSubscription, Subscription, User
from src.db.session import get_db
from src.main import create_application
from src.services import limits as limits_service


# Set test environment and override runtime settings to avoid external deps
os.environ["ENV"] = "test"
settings.ENV = "test"
settings.scheduler.enabled = False
settings.email.enabled = False
settings.push.vapid_public_key = None
settings.push.vapid_private_key = None
settings.reminders.timezone = "UTC"
settings.JWT_SECRET = "test-secret"
settings.CRON_SECRET = "test-cron-secret"
settings.DATABASE_URI = "sqlite+aiosqlite:///./test_app.db"

API_PREFIX = f"{settings.API_PREFIX}/v1"


class FakeRedis:
    """Minimal async Redis stub for rate limiting tests."""

    def __init__(self) -> None:
        self.store: Dict[str, int | str] = {}

    async def incr(self, key: str) -> int:
        current = int(self.store.get(key, 0)) + 1
        self.store[key] = current
        return current

    async def expire(self, key: str, seconds: int) -> None:
        self.store.setdefault(f"{key}:ttl", seconds)

    async def aclose(self) -> None:
        return None


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch) -> FakeRedis:
    """Patch the limits module to use an in-memory Redis stub."""

    fake = FakeRedis()
    monkeypatch.setattr(limits_service, "_redis_client", fake, raising=False)
    yield fake
    monkeypatch.setattr(limits_service, "_redis_client", None, raising=False)


def build_auth_header(user_id: UUID) -> Dict[str, str]:
    token = jwt.encode({"user_id": str(user_id)}, settings.JWT_SECRET, algorithm=settings.JWT_ALG)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def test_db_engine(tmp_path):
    """
    Create a fresh SQLite database for each test.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test_app.db'}", poolclass=NullPool
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_db_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def test_db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    Session for seeding and assertions; commit before calling the API.
    """
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def test_app(session_factory) -> AsyncGenerator[FastAPI, None]:
    """
    Create a FastAPI test application bound to the per-test database.
    """
    app = create_application()

    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _override_get_db
    async with LifespanManager(app):
        yield app


@pytest_asyncio.fixture
async def client(test_app: FastAPI) -> AsyncGenerator[httpx.AsyncClient, None]:
    """
    Create an async HTTP client for testing.
    """
    transport = httpx.ASGITransport(app=test_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as async_client:
        yield async_client


def utc(year: int, month: int, day: int, hour: int = 0) -> dt.datetime:
    return dt.datetime(year, month, day, hour, tzinfo=dt.timezone.utc)


async def seed_user(session: AsyncSession, name: str = "Ada", email: Optional[str] = None) -> User:
    user = User(name=name, email=email or f"{uuid4().hex[:8]}@example.com")
    session.add(user)
    await session.commit()
    return user


async def seed_subscription(
    session: AsyncSession,
    user: User,
    *,
    name: str = "Netflix",
    amount: str = "15.99",
    currency: str = "USD",
    billing_cycle: str = "monthly",
    next_billing_date: Optional[dt.datetime] = None,
    is_active: bool = True,
) -> Subscription:
    subscription = Subscription(
        user_id=user.id,
        name=name,
        amount=Decimal(amount),
        currency=currency,
        billing_cycle=billing_cycle,
        next_billing_date=next_billing_date,
        is_active=is_active,
    )
    session.add(subscription)
    await session.commit()
    return subscription


async def seed_endpoint(
    session: AsyncSession, user: User, endpoint: Optional[str] = None, is_active: bool = True
) -> PushSubscription:
    push = PushSubscription(
        user_id=user.id,
        endpoint=endpoint or f"https://push.example.com/{uuid4().hex}",
        p256dh="p256dh-key",
        auth="auth-secret",
        is_active=is_active,
    )
    session.add(push)
    await session.commit()
    return push


@pytest.fixture
def seed():
    """Seeding helpers: ``seed.user``, ``seed.subscription``, ``seed.endpoint``."""

    class _Seed:
        user = staticmethod(seed_user)
        subscription = staticmethod(seed_subscription)
        endpoint = staticmethod(seed_endpoint)
        utc = staticmethod(utc)

    return _Seed


@pytest.fixture
def auth_header():
    return build_auth_header
