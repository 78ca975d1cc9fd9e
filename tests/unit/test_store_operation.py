"""store_operation: bounded store calls and transient-failure translation."""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from questline.config import get_settings
from questline.database import store_operation
from questline.errors import NotFound, Unavailable


@pytest.fixture
def short_timeout(monkeypatch):
    monkeypatch.setenv("QL_STORE_TIMEOUT_SECONDS", "0.05")
    get_settings.cache_clear()


async def test_returns_result():
    @store_operation
    async def op(value: int) -> int:
        return value * 2

    assert await op(21) == 42


async def test_timeout_becomes_unavailable(short_timeout):
    @store_operation
    async def slow() -> None:
        await asyncio.sleep(1)

    with pytest.raises(Unavailable, match="timed out"):
        await slow()


async def test_operational_error_becomes_unavailable():
    @store_operation
    async def broken() -> None:
        raise OperationalError("SELECT 1", {}, Exception("connection reset"))

    with pytest.raises(Unavailable) as exc_info:
        await broken()
    assert isinstance(exc_info.value.__cause__, OperationalError)


async def test_integrity_error_propagates():
    @store_operation
    async def dup() -> None:
        raise IntegrityError("INSERT", {}, Exception("unique"))

    with pytest.raises(IntegrityError):
        await dup()


async def test_domain_errors_propagate_unchanged():
    @store_operation
    async def missing() -> None:
        raise NotFound("nope")

    with pytest.raises(NotFound, match="nope"):
        await missing()


def test_wraps_preserves_name():
    @store_operation
    async def named() -> None:
        return None

    assert named.__name__ == "named"
