"""Service test fixtures: async DB + FastAPI test client + principals.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use test DB session
    - db_manager patched so /health/ready and the seed path see the test DB
    - get_broadcaster overridden with a recording hub; events are inspectable

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for route tests
      (row locks from FOR UPDATE are a no-op here, not exercised)
    - Principals created through IdentityService so tokens are real JWTs
"""

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from httpx import ASGITransport, AsyncClient

from calcsync.api.deps import get_broadcaster
from calcsync.config import get_settings
from calcsync.core.domain_types import Role
from calcsync.db.base import Base
from calcsync.infrastructure.broadcast import BroadcastHub
from calcsync.infrastructure.database import get_db, DatabaseSessionManager
import calcsync.infrastructure.database as db_module
from calcsync.main import app
from calcsync.services.identity_service import IdentityService


class RecordingHub(BroadcastHub):
    """BroadcastHub that also keeps every published (event, payload)."""

    def __init__(self):
        super().__init__(queue_size=100)
        self.published: list[tuple[str, dict]] = []

    def publish(self, event: str, payload: dict) -> int:
        self.published.append((event, payload))
        return super().publish(event, payload)


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
def hub():
    return RecordingHub()


@pytest.fixture
async def client(test_engine, test_session_factory, hub):
    """FastAPI test client with DB and broadcaster overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_broadcaster] = lambda: hub

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


async def _principal(db, username: str, role: Role = Role.USER) -> dict:
    identity = IdentityService(db, get_settings())
    user = await identity.register(username, "password123", role=role)
    token = identity.issue_token(user)
    return {
        "user": user,
        "token": token,
        "headers": {"Authorization": f"Bearer {token}"},
    }


@pytest.fixture
async def alice(test_db):
    return await _principal(test_db, "alice")


@pytest.fixture
async def bob(test_db):
    return await _principal(test_db, "bob")


@pytest.fixture
async def admin(test_db):
    return await _principal(test_db, "root", Role.ADMIN)
