"""Shared test fixtures.

Every test gets its own SQLite database file (aiosqlite) with the schema
created from the ORM metadata, so no external services are needed.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from questline.config import get_settings
from questline.database import close_db, get_engine, get_session, init_db
from questline.db.base import Base
from questline.db.models import Task, User


@pytest.fixture(autouse=True)
def test_settings(tmp_path, monkeypatch) -> None:
    """Point settings at a per-test database and upload directory."""
    monkeypatch.setenv("QL_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'questline.db'}")
    monkeypatch.setenv("QL_LOG_FORMAT", "console")
    monkeypatch.setenv("QL_STORAGE_PROVIDER", "local")
    monkeypatch.setenv("QL_STORAGE_LOCAL_DIR", str(tmp_path / "uploads"))
    monkeypatch.setenv("QL_STORAGE_PUBLIC_BASE_URL", "http://test/uploads")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def database(test_settings) -> AsyncGenerator[None, None]:
    """Initialise the engine and create all tables."""
    await init_db(get_settings().database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(database) -> AsyncGenerator[AsyncSession, None]:
    """A direct database session for service calls and assertions."""
    sessions = get_session()
    session = await sessions.__anext__()
    yield session
    await sessions.aclose()


@pytest_asyncio.fixture
async def session_factory(database) -> async_sessionmaker[AsyncSession]:
    """Independent sessions for simulating concurrent requests."""
    return async_sessionmaker(get_engine(), class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def client(database) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client bound to a fresh app."""
    from questline.main import create_app

    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable:
    """Register a user through the registry service."""
    from questline.users.service import create_user

    async def _make(external_id: str, name: str | None = None, invited_by: str | None = None) -> User:
        user = await create_user(db_session, name or f"Player {external_id}", external_id, invited_by=invited_by)
        await db_session.commit()
        return user

    return _make


@pytest.fixture
def make_task(db_session: AsyncSession) -> Callable:
    """Add a task to the catalog."""
    from questline.tasks.service import create_task

    async def _make(title: str, points: int, url: str | None = None) -> Task:
        task = await create_task(db_session, title, points, url=url)
        await db_session.commit()
        return task

    return _make
