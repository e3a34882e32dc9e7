from __future__ import annotations

import pytest
from psycopg import errors as pg_errors

from stockkeeper.config import Settings
from stockkeeper.domain.errors import StoreUnavailableError
from stockkeeper.store.fallback import ProductFallback
from stockkeeper.store.selection import StoreHandle, StoreStatus, health, open_store


async def _unreachable(settings, dsn=None):
    raise OSError("connection refused")


class _FakePostgresStore:
    kind = "postgres"
    description = "Connected to PostgreSQL (data will persist)"

    def __init__(self) -> None:
        self.closed = False

    async def close(self) -> None:
        self.closed = True


@pytest.mark.asyncio
async def test_memory_backend_never_touches_database():
    async def explode(settings, dsn=None):
        raise AssertionError("database opener must not be called")

    handle = await open_store(Settings(db_backend="memory"), postgres_opener=explode)

    assert isinstance(handle.store, ProductFallback)
    assert handle.status == StoreStatus(
        type="memory", status="Using in-memory storage (data will not persist)"
    )


@pytest.mark.asyncio
async def test_auto_backend_falls_back_when_database_is_unreachable():
    handle = await open_store(Settings(db_backend="auto"), postgres_opener=_unreachable)

    assert handle.store.kind == "memory"
    assert handle.status.fallback_reason == "connection refused"
    assert len(handle.store) == 5


@pytest.mark.asyncio
async def test_postgres_backend_raises_when_database_is_unreachable():
    with pytest.raises(StoreUnavailableError):
        await open_store(Settings(db_backend="postgres"), postgres_opener=_unreachable)


@pytest.mark.asyncio
async def test_reachable_database_is_selected_and_closed():
    fake = _FakePostgresStore()

    async def opener(settings, dsn=None):
        return fake

    handle = await open_store(Settings(db_backend="auto"), postgres_opener=opener)
    await handle.close()

    assert handle.store is fake
    assert handle.status.type == "postgres"
    assert fake.closed


@pytest.mark.asyncio
async def test_auto_backend_falls_back_when_schema_setup_is_refused():
    async def no_privileges(settings, dsn=None):
        raise pg_errors.InsufficientPrivilege("permission denied for schema public")

    handle = await open_store(Settings(db_backend="auto"), postgres_opener=no_privileges)

    assert handle.store.kind == "memory"
    assert "permission denied" in handle.status.fallback_reason


@pytest.mark.asyncio
async def test_postgres_backend_raises_when_schema_setup_is_refused():
    async def no_privileges(settings, dsn=None):
        raise pg_errors.InsufficientPrivilege("permission denied for schema public")

    with pytest.raises(StoreUnavailableError):
        await open_store(Settings(db_backend="postgres"), postgres_opener=no_privileges)


@pytest.mark.asyncio
async def test_non_connection_errors_are_not_swallowed():
    async def broken(settings, dsn=None):
        raise RuntimeError("schema bug")

    with pytest.raises(RuntimeError):
        await open_store(Settings(db_backend="auto"), postgres_opener=broken)


def test_health_reports_active_store():
    handle = StoreHandle(
        store=ProductFallback(),
        status=StoreStatus(type="memory", status="Using in-memory storage (data will not persist)",
                           fallback_reason="timeout"),
    )

    payload = health(handle)

    assert payload["success"] is True
    assert payload["message"] == "Inventory Management API is running"
    assert payload["database"] == {
        "type": "memory",
        "status": "Using in-memory storage (data will not persist)",
        "fallback_reason": "timeout",
    }
    assert "timestamp" in payload
