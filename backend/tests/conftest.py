"""
Pytest configuration and fixtures.

This file is automatically discovered by pytest and provides
shared fixtures for all test modules.

Every test gets its own in-memory SQLite database (aiosqlite), so tests can
commit freely. The environment is set before feedboard is imported because
settings are read at import time.

References:
-----------
- Pytest Fixtures: https://docs.pytest.org/en/stable/fixture.html
- FastAPI Testing: https://fastapi.tiangolo.com/advanced/async-tests/
"""

import os

os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-that-is-at-least-32-characters"
os.environ["DEFAULT_UPLOAD_TYPE"] = "Graphic"
os.environ["ENABLE_NOTIFICATIONS"] = "false"
os.environ["RENDER_CACHE_ENABLED"] = "false"
os.environ["BROWSE_PATH"] = "/browse"

import base64  # noqa: E402
from datetime import timedelta  # noqa: E402
from typing import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from feedboard.content_types import build_registry  # noqa: E402
from feedboard.core.config import ContentDefaults  # noqa: E402
from feedboard.core.permissions import default_gate  # noqa: E402
from feedboard.core.security import create_access_token, get_password_hash  # noqa: E402
from feedboard.db.base import Base  # noqa: E402
from feedboard.db.deps import get_db  # noqa: E402
from feedboard.main import app  # noqa: E402
from feedboard.models import Feed, User  # noqa: E402
from feedboard.services.content_service import ContentService  # noqa: E402

# 1x1 transparent PNG
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


# ================================
# Database Fixtures
# ================================

@pytest_asyncio.fixture
async def test_engine():
    """
    Fresh in-memory database with all tables.

    StaticPool keeps the single in-memory connection alive for the test.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False,  # Set to True for SQL debugging
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Database session configured like the application's."""
    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )
    async with session_factory() as session:
        yield session


# ================================
# FastAPI Client Fixtures
# ================================

@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client for the app, using the test database session.

    Usage:
        async def test_something(client: AsyncClient):
            response = await client.get("/api/v1/contents")
            assert response.status_code == 200
    """
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ================================
# Content Core Fixtures
# ================================

@pytest.fixture
def defaults() -> ContentDefaults:
    return ContentDefaults(default_upload_type="Graphic", default_content_duration=8)


@pytest.fixture
def registry(defaults: ContentDefaults):
    return build_registry(defaults)


@pytest.fixture
def service(db_session: AsyncSession, registry, defaults: ContentDefaults) -> ContentService:
    return ContentService(db_session, registry, default_gate, defaults)


# ================================
# User Fixtures
# ================================

async def _create_user(db: AsyncSession, email: str, name: str, **kwargs) -> User:
    user = User(
        email=email,
        name=name,
        hashed_password=get_password_hash("testpass123"),
        **kwargs,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """
    Regular content author. Password is "testpass123".
    """
    return await _create_user(db_session, "test@example.com", "Test User", is_active=True)


@pytest_asyncio.fixture
async def moderator(db_session: AsyncSession) -> User:
    """Owner (moderator) of the moderated_feed fixture."""
    return await _create_user(db_session, "moderator@example.com", "Moderator", is_active=True)


@pytest_asyncio.fixture
async def inactive_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "inactive@example.com", "Inactive User", is_active=False)


# ================================
# Feed Fixtures
# ================================

async def _create_feed(db: AsyncSession, name: str, owner: User | None, **kwargs) -> Feed:
    feed = Feed(name=name, owner_id=owner.id if owner else None, **kwargs)
    db.add(feed)
    await db.commit()
    await db.refresh(feed)
    return feed


@pytest_asyncio.fixture
async def open_feed(db_session: AsyncSession, moderator: User) -> Feed:
    """Feed moderated by someone else but open to submissions."""
    return await _create_feed(db_session, "Lobby", moderator)


@pytest_asyncio.fixture
async def own_feed(db_session: AsyncSession, test_user: User) -> Feed:
    """Feed moderated by test_user."""
    return await _create_feed(db_session, "Test User's Screens", test_user)


@pytest_asyncio.fixture
async def second_open_feed(db_session: AsyncSession, moderator: User) -> Feed:
    return await _create_feed(db_session, "Cafeteria", moderator)


@pytest_asyncio.fixture
async def closed_feed(db_session: AsyncSession, moderator: User) -> Feed:
    """Feed that only its moderator may submit to."""
    return await _create_feed(db_session, "Boardroom", moderator, is_submittable=False)


# ================================
# Authentication Fixtures
# ================================

def _headers_for(user: User) -> dict[str, str]:
    token = create_access_token(data={"sub": user.email}, expires_delta=timedelta(minutes=30))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(test_user: User) -> dict[str, str]:
    """
    Usage:
        async def test_protected_endpoint(client: AsyncClient, auth_headers: dict):
            response = await client.get("/api/v1/auth/me", headers=auth_headers)
            assert response.status_code == 200
    """
    return _headers_for(test_user)


@pytest.fixture
def moderator_headers(moderator: User) -> dict[str, str]:
    return _headers_for(moderator)


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES


@pytest.fixture
def png_base64() -> str:
    return base64.b64encode(PNG_BYTES).decode("ascii")
