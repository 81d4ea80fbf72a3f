"""
Shared fixtures: in-memory SQLite store, a pinned clock and a fake
Home Assistant hub behind ``httpx.MockTransport``.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncGenerator, Dict, Optional

import httpx
import pytest
import pytest_asyncio
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from connectors import encryption
from connectors.homeassistant import HomeAssistantConnector
from database.models import UNLIMITED_USES, Base, Grant, Integration, Lock, User
from database.store import CredentialStore
from tests.fakes import APP_URL, CLIENT_SECRET, HUB_URL, FakeHub, FixedClock

# ── Infrastructure ─────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def plaintext_secrets():
    encryption.configure(None)
    yield
    encryption.configure(None)


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(db_session) -> CredentialStore:
    return CredentialStore(db_session)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def fake_hub() -> FakeHub:
    return FakeHub()


@pytest.fixture
def connector(fake_hub) -> HomeAssistantConnector:
    return HomeAssistantConnector(
        client_id=APP_URL,
        redirect_uri=f"{APP_URL}/integration/callback",
        timeout=5,
        transport=httpx.MockTransport(fake_hub.handler),
    )


# ── Records ────────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def make_user(store):
    async def _make(email: Optional[str] = None) -> User:
        user = User(
            user_id=uuid.uuid4(),
            email=email or f"{uuid.uuid4().hex[:8]}@example.com",
            display_name="owner",
        )
        return await store.save(user)

    return _make


@pytest_asyncio.fixture
async def owner(make_user) -> User:
    return await make_user("owner@example.com")


@pytest_asyncio.fixture
async def integration(store, owner, clock) -> Integration:
    """A fully set-up integration whose access token is still valid."""
    record = Integration(
        base_url=HUB_URL,
        owner_id=owner.user_id,
        client_secret=SecretStr(CLIENT_SECRET),
        access_token="A1",
        refresh_token="R1",
        access_token_expires_at=clock.now() + timedelta(hours=1),
    )
    return await store.save(record)


@pytest_asyncio.fixture
async def lock(store, integration) -> Lock:
    record = Lock(
        identification_token="front-door-public",
        integration_id=integration.id,
        entity_id="lock.front_door",
        name="Front door",
    )
    return await store.save(record)


@pytest_asyncio.fixture
async def make_grant(store, lock, clock):
    async def _make(**overrides: Any) -> Grant:
        fields: Dict[str, Any] = {
            "token": f"grant-{uuid.uuid4().hex}",
            "lock_id": lock.id,
            "not_before": clock.now() - timedelta(hours=1),
            "not_after": clock.now() + timedelta(hours=1),
            "usage_limit": UNLIMITED_USES,
        }
        fields.update(overrides)
        return await store.save(Grant(**fields))

    return _make
