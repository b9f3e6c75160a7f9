"""Pytest configuration and shared fixtures."""
import os
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set test environment variables BEFORE any app imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("APPWRITE_ENDPOINT", "http://localhost/v1")
os.environ.setdefault("APPWRITE_PROJECT_ID", "test-project")
os.environ.setdefault("APPWRITE_API_KEY", "test-key")

from app.core.database.base import Base
from app.core.database.engine import get_db
from app.core.events import DomainEvent, events
from app.core.identity import Actor
from app.core.rate_limit import limiter
from app.features.documents.storage import ContentStore, get_content_store
from app.features.users.dependencies import get_current_actor
from app.main import app


class InMemoryContentStore(ContentStore):
    """Content store backed by a dict, for tests."""

    def __init__(self):
        self.blobs: dict[str, bytes] = {}

    async def save(self, path: str, data: bytes) -> None:
        self.blobs[path] = data

    async def load(self, path: str) -> bytes:
        return self.blobs[path]

    async def delete(self, path: str) -> None:
        self.blobs.pop(path, None)


@pytest.fixture
async def engine():
    """In-memory SQLite engine shared by every connection of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    TestingSessionLocal = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
def content_store() -> InMemoryContentStore:
    return InMemoryContentStore()


@pytest.fixture
def recorded_events():
    """Every domain event emitted during the test, in order."""
    received: list[DomainEvent] = []
    events.subscribe(received.append)
    yield received
    events.unsubscribe(received.append)


@pytest.fixture
async def client(db_session, content_store) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app, wired to the test session."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_content_store] = lambda: content_store
    limiter.enabled = False
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture
def act_as():
    """Make subsequent requests run as the given actor."""
    def _act_as(actor: Actor | None):
        if actor is None:
            app.dependency_overrides.pop(get_current_actor, None)
        else:
            app.dependency_overrides[get_current_actor] = lambda: actor
    return _act_as
