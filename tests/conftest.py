"""
Pytest configuration for stockkeeper.

Provides fixtures for:
- Settings override for tests
- A freshly seeded in-memory store per test
- PostgreSQL connection management for integration tests
"""

from __future__ import annotations

import os
from typing import AsyncGenerator

import psycopg
import pytest
import pytest_asyncio

from stockkeeper.config import Settings, get_settings
from stockkeeper.store.fallback import ProductFallback
from stockkeeper.store.seed import ID_PREFIX


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """Settings are cached process-wide; tests that patch env need a fresh read."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "stockkeeper"),
        db_connect_attempts=1,
        db_connect_timeout=2,
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return (
        f"postgresql://{test_settings.db_user}:{test_settings.db_password}"
        f"@{test_settings.db_host}:{test_settings.db_port}/{test_settings.db_name}"
    )


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=2) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture
def store() -> ProductFallback:
    """A fresh in-memory store holding the five seed products."""
    return ProductFallback()


@pytest.fixture
def seed_id():
    """Build the identifier of the n-th seed product."""
    return lambda number: f"{ID_PREFIX}{number}"


@pytest_asyncio.fixture
async def pg_store(
    test_settings: Settings, test_dsn: str, db_connection_available: bool
) -> AsyncGenerator:
    """
    A PostgreSQL store over an emptied products table.

    Skips when the database is not reachable.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    from stockkeeper.infrastructure.db_factory import open_async_pool
    from stockkeeper.store.postgres import PostgresProductStore

    pool = await open_async_pool(test_settings, dsn=test_dsn)
    pg = PostgresProductStore(pool)
    await pg.ensure_schema()
    async with pool.connection() as conn:
        await conn.execute("TRUNCATE TABLE public.products;")
    try:
        yield pg
    finally:
        async with pool.connection() as conn:
            await conn.execute("TRUNCATE TABLE public.products;")
        await pg.close()
