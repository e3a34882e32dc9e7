"""
Database connection factory utilities for stockkeeper.

Provides the async connection pool used by the PostgreSQL product store and
a plain sync connection for scripts. Opening is retried with exponential
backoff using tenacity.
"""

from __future__ import annotations

from typing import Optional

import psycopg
from psycopg import Connection
from psycopg_pool import AsyncConnectionPool, PoolTimeout
from tenacity import (
    AsyncRetrying,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from stockkeeper.config import Settings, build_dsn, get_settings
from stockkeeper.utils.logging import get_logger

log = get_logger(__name__)

TRANSIENT_ERRORS = (psycopg.OperationalError, psycopg.InterfaceError, PoolTimeout, OSError)


async def open_async_pool(
    settings: Optional[Settings] = None,
    dsn: Optional[str] = None,
) -> AsyncConnectionPool:
    """
    Open an async connection pool and wait until it holds a live connection.

    Retries ``settings.db_connect_attempts`` times with exponential backoff.

    Parameters
    ----------
    settings : Settings | None
        Connection and pool sizing settings. Defaults to ``get_settings()``.
    dsn : str | None
        Optional DSN override (tests, scripts).

    Returns
    -------
    AsyncConnectionPool
        An opened pool. The caller owns it and must close it.

    Raises
    ------
    psycopg.OperationalError | PoolTimeout
        If the database is unreachable after all attempts.
    """
    settings = settings or get_settings()
    conninfo = dsn or build_dsn(settings)

    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(settings.db_connect_attempts),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        reraise=True,
    ):
        with attempt:
            pool = AsyncConnectionPool(
                conninfo=conninfo,
                min_size=settings.db_pool_min_size,
                max_size=settings.db_pool_max_size,
                kwargs={"connect_timeout": int(settings.db_connect_timeout)},
                open=False,
            )
            try:
                await pool.open(wait=True, timeout=settings.db_connect_timeout)
            except BaseException:
                await pool.close()
                log.warning(
                    "Database connection attempt failed",
                    extra={
                        "attempt": attempt.retry_state.attempt_number,
                        "host": settings.db_host,
                        "port": settings.db_port,
                    },
                )
                raise
    return pool


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def get_sync_connection(dsn: Optional[str] = None) -> Connection:
    """
    Acquire a dedicated synchronous connection with automatic retry.

    Retries up to 3 times with exponential backoff for transient connection
    errors. Used by the seeding script; the service itself uses the async pool.

    Raises
    ------
    psycopg.OperationalError
        If connection fails after all retry attempts.
    """
    return psycopg.connect(dsn or build_dsn())


__all__ = ["TRANSIENT_ERRORS", "get_sync_connection", "open_async_pool"]
