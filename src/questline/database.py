"""Async SQLAlchemy engine and session management."""

from __future__ import annotations

import asyncio
import functools
from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any, ParamSpec, TypeVar

import structlog
from sqlalchemy import event
from sqlalchemy import exc as sa_exc
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from questline.config import get_settings
from questline.errors import Unavailable

logger = structlog.get_logger()

P = ParamSpec("P")
R = TypeVar("R")

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _enable_sqlite_transactions(engine: AsyncEngine) -> None:
    """Take over BEGIN from the sqlite driver.

    pysqlite/aiosqlite defer BEGIN until the first write, which breaks
    SAVEPOINT and lets two writers read the same snapshot. IMMEDIATE takes
    the write lock up front so concurrent transactions are serialised.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: Any, _record: Any) -> None:  # noqa: ANN401
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn: Any) -> None:  # noqa: ANN401
        conn.exec_driver_sql("BEGIN IMMEDIATE")


async def init_db(url: str) -> None:
    """Initialize the database engine and session factory."""
    global _engine, _session_factory  # noqa: PLW0603
    settings = get_settings()

    if url.startswith("sqlite"):
        _engine = create_async_engine(
            url,
            echo=False,
            connect_args={"timeout": settings.store_timeout_seconds},
        )
        _enable_sqlite_transactions(_engine)
    else:
        _engine = create_async_engine(
            url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.store_timeout_seconds,
            pool_pre_ping=True,
            echo=False,
            connect_args={
                "statement_cache_size": 0,
                "command_timeout": settings.store_timeout_seconds,
            },
        )
    _session_factory = async_sessionmaker(
        _engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def close_db() -> None:
    """Dispose of the database engine."""
    global _engine, _session_factory  # noqa: PLW0603
    if _engine:
        await _engine.dispose()
        _engine = None
        _session_factory = None


def get_engine() -> AsyncEngine:
    """Get the async engine instance."""
    if _engine is None:
        msg = "Database not initialized. Call init_db() first."
        raise RuntimeError(msg)
    return _engine


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session (FastAPI dependency)."""
    if _session_factory is None:
        msg = "Database not initialized. Call init_db() first."
        raise RuntimeError(msg)
    async with _session_factory() as session:
        yield session


def store_operation(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
    """Bound a service call by the store timeout and translate transient failures.

    Timeouts, pool exhaustion and connection-level errors become
    ``Unavailable``; everything else propagates unchanged.
    """

    @functools.wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        timeout = get_settings().store_timeout_seconds
        try:
            async with asyncio.timeout(timeout):
                return await func(*args, **kwargs)
        except (TimeoutError, sa_exc.TimeoutError) as exc:
            logger.warning("store_timeout", operation=func.__name__, timeout=timeout)
            msg = f"Store call timed out after {timeout}s"
            raise Unavailable(msg) from exc
        except (sa_exc.OperationalError, sa_exc.InterfaceError, ConnectionError) as exc:
            logger.warning("store_unavailable", operation=func.__name__, error=str(exc))
            msg = "Store is temporarily unavailable"
            raise Unavailable(msg) from exc

    return wrapper
