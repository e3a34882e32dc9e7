from __future__ import annotations

from contextlib import asynccontextmanager
from types import SimpleNamespace

import pytest
from psycopg import errors as pg_errors

from stockkeeper.catalog import error_response
from stockkeeper.domain.errors import DuplicateKeyError, ProductValidationError
from stockkeeper.store.postgres import PostgresProductStore, _duplicate_error
from stockkeeper.store.seed import seed_products


class _FakeCursor:
    """Returns ``row`` for SELECTs and raises ``error`` for writes."""

    def __init__(self, error: Exception, row=None) -> None:
        self._error = error
        self._row = row

    async def execute(self, sql, params=None):
        if not sql.lstrip().upper().startswith("SELECT"):
            raise self._error

    async def executemany(self, sql, rows):
        raise self._error

    async def fetchone(self):
        return self._row

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False


class _FakeConnection:
    def __init__(self, error: Exception, row=None) -> None:
        self._error = error
        self._row = row

    async def execute(self, sql, params=None):
        raise self._error

    def cursor(self, *args, **kwargs):
        return _FakeCursor(self._error, self._row)

    @asynccontextmanager
    async def transaction(self):
        yield


class _FakePool:
    def __init__(self, error: Exception, row=None) -> None:
        self._conn = _FakeConnection(error, row)

    @asynccontextmanager
    async def connection(self):
        yield self._conn

    async def close(self) -> None:
        pass


def _seed_row():
    return seed_products()[0].model_dump()


@pytest.mark.asyncio
async def test_check_violation_on_create_is_a_validation_error():
    store = PostgresProductStore(_FakePool(pg_errors.CheckViolation("violates check constraint")))

    with pytest.raises(ProductValidationError) as excinfo:
        await store.create({"name": "Webcam", "price": 1})

    assert error_response(excinfo.value).status == 400


@pytest.mark.asyncio
async def test_out_of_range_on_update_is_a_validation_error():
    error = pg_errors.NumericValueOutOfRange("integer out of range")
    store = PostgresProductStore(_FakePool(error, row=_seed_row()))

    with pytest.raises(ProductValidationError):
        await store.find_by_id_and_update(_seed_row()["id"], {"quantity": 7})


@pytest.mark.asyncio
async def test_check_violation_on_insert_many_is_a_validation_error():
    store = PostgresProductStore(_FakePool(pg_errors.CheckViolation("violates check constraint")))

    with pytest.raises(ProductValidationError):
        await store.insert_many([{"name": "Webcam", "price": 1}])


@pytest.mark.asyncio
async def test_negative_quantity_update_is_rejected_before_reaching_the_database():
    store = PostgresProductStore(_FakePool(AssertionError("no write expected"), row=_seed_row()))

    with pytest.raises(ProductValidationError):
        await store.find_by_id_and_update(_seed_row()["id"], {"quantity": -1})


@pytest.mark.asyncio
async def test_unique_violation_reports_submitted_name():
    store = PostgresProductStore(_FakePool(pg_errors.UniqueViolation("duplicate key")))

    with pytest.raises(DuplicateKeyError) as excinfo:
        await store.create({"name": "Wireless MOUSE", "price": 1})

    assert excinfo.value.key_value == {"name": "Wireless MOUSE"}


def test_duplicate_detail_maps_back_to_batch_item_spelling():
    exc = SimpleNamespace(diag=SimpleNamespace(message_detail="Key (lower(name))=(webcam) already exists."))

    error = _duplicate_error(exc, ["Dock", "WebCam"])

    assert error.key_value == {"name": "WebCam"}
