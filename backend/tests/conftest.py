"""
Naksh Backend — Test Configuration (conftest.py)
==================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.
Who:   Used by all test files in the tests/ directory.
When:  Fixtures are created fresh for each test.

Fixture Hierarchy:
    engine          in-memory SQLite (aiosqlite), schema created from the models
    └── db_session  one AsyncSession per test, shared with the app under test
        ├── users   alice, bob, carol (moderator)
        ├── post    a live public post by alice
        └── client  HTTPX AsyncClient wired to create_app() with the
                    test session, header identity and a mocked media host
"""

import os
from datetime import timedelta
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

# Override settings for testing BEFORE any naksh imports
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["LOG_LEVEL"] = "WARNING"  # Reduce noise during tests

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import naksh.models  # noqa: F401
from naksh.database import Base, get_db_session
from naksh.models.post import Post
from naksh.models.user import User
from naksh.providers.identity import GatewayIdentityProvider
from naksh.providers.media import MediaHost, MediaUpload
from naksh.utils import utcnow

ALICE = "user_alice"
BOB = "user_bob"
CAROL = "user_carol"


def auth(user_id: str) -> dict:
    """Request headers identifying `user_id` to the gateway identity provider."""
    return {"X-User-Id": user_id}


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
    )

    # SQLite leaves foreign keys off unless asked
    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest_asyncio.fixture
async def users(db_session):
    """Three profiles; carol moderates."""
    alice = User(id=ALICE, username="alice", email="alice@example.com", display_name="Alice")
    bob = User(id=BOB, username="bob", email="bob@example.com", display_name="Bob")
    carol = User(
        id=CAROL, username="carol", email="carol@example.com", display_name="Carol", is_moderator=True
    )
    db_session.add_all([alice, bob, carol])
    await db_session.flush()
    return {"alice": alice, "bob": bob, "carol": carol}


def make_post(author_id: str, caption: str = "Sunset at the pier", hours_left: float = 24) -> Post:
    now = utcnow()
    return Post(
        author_id=author_id,
        caption=caption,
        visibility="PUBLIC",
        created_at=now,
        expires_at=now + timedelta(hours=hours_left),
    )


@pytest_asyncio.fixture
async def post(db_session, users):
    """A live public post by alice."""
    post = make_post(ALICE)
    db_session.add(post)
    await db_session.flush()
    return post


@pytest_asyncio.fixture
async def expired_post(db_session, users):
    post = make_post(ALICE, caption="Yesterday", hours_left=-1)
    db_session.add(post)
    await db_session.flush()
    return post


# ══════════════════════════════════════════════════════════════════════════
# Collaborators and API client
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def media_host():
    """
    Mocked media host.

    upload() answers with a fixed asset, delete() reports success,
    health_check() reports reachable.
    """
    host = MagicMock(spec=MediaHost)
    host.upload = AsyncMock(
        return_value=MediaUpload(
            url="https://res.cloudinary.com/demo/image/upload/naksh/avatars/abc.jpg",
            public_id="naksh/avatars/abc",
            width=400,
            height=400,
            bytes=2048,
            format="jpg",
        )
    )
    host.delete = AsyncMock(return_value=True)
    host.health_check = AsyncMock(return_value=True)
    host.close = AsyncMock()
    return host


@pytest_asyncio.fixture
async def app(db_session, media_host):
    from naksh.main import create_app

    app = create_app(identity=GatewayIdentityProvider(), media_host=media_host)

    async def _test_session():
        yield db_session

    app.dependency_overrides[get_db_session] = _test_session
    return app


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client talking to the app in-process.

    Usage:
        async def test_health(client):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
