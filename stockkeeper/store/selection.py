"""
Store selection at startup.

Tries the PostgreSQL store first and falls back to the in-memory store when
the database cannot be reached, recording which one is active so the health
check can report it. Callers receive the chosen store in a ``StoreHandle``
and inject it wherever products are needed.

Usage:
    handle = await open_store(get_settings())
    try:
        products = await handle.store.find({"category": "elec"}).limit(10)
    finally:
        await handle.close()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import psycopg

from stockkeeper.config import Settings, get_settings
from stockkeeper.domain.errors import StoreUnavailableError
from stockkeeper.infrastructure.db_factory import TRANSIENT_ERRORS, open_async_pool
from stockkeeper.store.abstract import ProductStore
from stockkeeper.store.fallback import ProductFallback
from stockkeeper.store.postgres import PostgresProductStore
from stockkeeper.utils.logging import get_logger

log = get_logger(__name__)

# Any driver error while opening (schema setup included) counts as the database being unusable.
_STARTUP_ERRORS = (*TRANSIENT_ERRORS, psycopg.Error)


@dataclass(frozen=True)
class StoreStatus:
    """Which store is active, in the shape the health endpoint reports."""

    type: str
    status: str
    fallback_reason: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"type": self.type, "status": self.status}
        if self.fallback_reason:
            payload["fallback_reason"] = self.fallback_reason
        return payload


@dataclass
class StoreHandle:
    store: ProductStore
    status: StoreStatus
    opened_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    async def close(self) -> None:
        await self.store.close()


async def _open_postgres(settings: Settings, dsn: Optional[str] = None) -> PostgresProductStore:
    pool = await open_async_pool(settings, dsn=dsn)
    store = PostgresProductStore(pool)
    try:
        await store.ensure_schema()
    except BaseException:
        await store.close()
        raise
    return store


def _memory_handle(reason: Optional[str] = None) -> StoreHandle:
    store = ProductFallback()
    return StoreHandle(
        store=store,
        status=StoreStatus(type=store.kind, status=store.description, fallback_reason=reason),
    )


async def open_store(
    settings: Optional[Settings] = None,
    dsn: Optional[str] = None,
    postgres_opener: Optional[Callable[..., Any]] = None,
) -> StoreHandle:
    """
    Choose and open the product store according to ``settings.db_backend``.

    - ``memory``: skip the database entirely.
    - ``postgres``: the database must be reachable; failure raises.
    - ``auto``: try the database, fall back to memory when the database
      cannot be reached or prepared.

    Raises
    ------
    StoreUnavailableError
        In ``postgres`` mode when the database cannot be reached or prepared.
    """
    settings = settings or get_settings()
    opener = postgres_opener or _open_postgres

    if settings.db_backend == "memory":
        log.info("Using in-memory storage (DB_BACKEND=memory)")
        return _memory_handle()

    try:
        store = await opener(settings, dsn=dsn)
    except _STARTUP_ERRORS as exc:
        if settings.db_backend == "postgres":
            raise StoreUnavailableError(f"PostgreSQL is not reachable: {exc}") from exc
        log.warning(
            "PostgreSQL not available, using in-memory storage",
            extra={"host": settings.db_host, "port": settings.db_port, "error": str(exc)},
        )
        return _memory_handle(reason=str(exc))

    log.info("Using PostgreSQL for data storage", extra={"host": settings.db_host})
    return StoreHandle(store=store, status=StoreStatus(type=store.kind, status=store.description))


def health(handle: StoreHandle) -> Dict[str, Any]:
    """Health payload: service message, active database and a timestamp."""
    return {
        "success": True,
        "message": "Inventory Management API is running",
        "database": handle.status.as_dict(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


__all__ = ["StoreHandle", "StoreStatus", "health", "open_store"]
