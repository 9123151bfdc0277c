"""
Shared test fixtures for the Quill CMS test suite.

Each test gets its own in-memory aiosqlite database (StaticPool, so the
app's sessions and the test's ``db_session`` see the same connection).
"""

import os
import sys
from typing import AsyncGenerator
from uuid import uuid4

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.api.v1.deps import get_db
from app.core.passwords import hash_password
from app.core.security import create_access_token
from app.core.sessions import start_session
from app.db.base import Base, utcnow
from app.db.init_db import seed_authorization
from app.main import app
from app.models.post import Post, PostStatus
from app.models.user import User, UserRole

DEFAULT_PASSWORD = "Str0ng!Pass"


@pytest.fixture
async def engine():
    """Fresh in-memory database with every table created."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def async_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app and the test database."""

    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def roles(db_session: AsyncSession):
    """Seeded permissions and roles, keyed by role name."""
    return await seed_authorization(db_session)


@pytest.fixture
def make_user(db_session: AsyncSession, roles):
    """Factory: ``await make_user("author")`` → ``(user, auth_headers)``.

    The user gets the role, a live session and a bearer token.
    """

    async def _make(
        role: str | None = "super_admin",
        *,
        email: str | None = None,
        password: str = DEFAULT_PASSWORD,
        with_session: bool = True,
        **fields,
    ) -> tuple[User, dict[str, str]]:
        fields.setdefault("password_changed_at", utcnow())
        user = User(
            email=email or f"{role or 'nobody'}-{uuid4().hex[:8]}@example.com",
            password_hash=hash_password(password),
            full_name=f"Test {role or 'Nobody'}",
            **fields,
        )
        db_session.add(user)
        await db_session.flush()
        if role:
            db_session.add(UserRole(user_id=user.id, role_id=roles[role].id))
        if with_session:
            await start_session(db_session, user.id)
        await db_session.commit()

        token = create_access_token(user.id)
        return user, {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture
def make_post(db_session: AsyncSession):
    """Factory: insert a post straight into the database."""

    async def _make(author: User, status: PostStatus = PostStatus.DRAFT, **fields) -> Post:
        suffix = uuid4().hex[:8]
        fields.setdefault("title", f"Post {suffix}")
        fields.setdefault("slug", f"post-{suffix}")
        fields.setdefault("content", "Body text")
        post = Post(status=status.value, created_by=author.id, **fields)
        db_session.add(post)
        await db_session.commit()
        await db_session.refresh(post)
        return post

    return _make
