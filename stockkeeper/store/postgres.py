"""
PostgreSQL product store.

Implements the ProductStore surface over ``public.products``. Query plans are
compiled into one parameterised SELECT, so filtering, ordering, skip and limit
all run in the database. A unique index on ``lower(name)`` enforces the
case-insensitive name rule; violations surface as ``DuplicateKeyError``, the
same error the in-memory fallback raises.
"""

from __future__ import annotations

import re
import uuid
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from psycopg import errors as pg_errors
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from stockkeeper.domain.errors import DuplicateKeyError, ProductValidationError
from stockkeeper.domain.models import Product, apply_update, build_product, validate_product
from stockkeeper.store.abstract import AbstractProductStore, DeleteResult, ids_from_delete_filter
from stockkeeper.store.query import (
    FieldPredicate,
    FilterSpec,
    ProductQuery,
    QueryPlan,
    parse_filter,
)
from stockkeeper.utils.logging import get_logger

log = get_logger(__name__)

TABLE = "public.products"
COLUMNS = (
    "id",
    "name",
    "quantity",
    "price",
    "category",
    "description",
    "supplier",
    "created_at",
    "updated_at",
)
_SELECT_COLUMNS = ", ".join(COLUMNS)
_INSERT_SQL = (
    f"INSERT INTO {TABLE} ({_SELECT_COLUMNS}) "
    f"VALUES ({', '.join(['%s'] * len(COLUMNS))})"
)

SCHEMA_SQL = f"""
CREATE TABLE IF NOT EXISTS {TABLE} (
    id          text PRIMARY KEY,
    name        text NOT NULL,
    quantity    integer NOT NULL DEFAULT 0 CHECK (quantity >= 0),
    price       double precision NOT NULL CHECK (price >= 0),
    category    text,
    description text,
    supplier    text,
    created_at  timestamptz NOT NULL,
    updated_at  timestamptz NOT NULL
);
CREATE UNIQUE INDEX IF NOT EXISTS products_name_lower_key ON {TABLE} (lower(name));
"""

_COMPARATORS = {"eq": "=", "gt": ">", "gte": ">=", "lt": "<", "lte": "<="}
_DUPLICATE_DETAIL = re.compile(r"\)=\((?P<value>.*)\) already exists")
# Raised by the CHECK constraints and column types; UniqueViolation is handled first.
_CONSTRAINT_ERRORS = (pg_errors.IntegrityError, pg_errors.DataError)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def compile_where(predicates: Sequence[FieldPredicate]) -> Tuple[str, List[Any]]:
    """
    Compile predicates to a WHERE clause (empty string when unconstrained).

    Field names come from the fixed product schema, never from callers, so
    interpolating them is safe; values always travel as parameters.
    """
    clauses: List[str] = []
    params: List[Any] = []
    for predicate in predicates:
        column = predicate.field
        if predicate.op == "contains":
            clauses.append(f"{column} ILIKE %s")
            params.append(f"%{_escape_like(predicate.value)}%")
        elif predicate.op == "in":
            clauses.append(f"{column} = ANY(%s)")
            params.append(list(predicate.value))
        else:
            clauses.append(f"{column} {_COMPARATORS[predicate.op]} %s")
            params.append(predicate.value)
    if not clauses:
        return "", params
    return " WHERE " + " AND ".join(clauses), params


def compile_select(plan: QueryPlan) -> Tuple[str, List[Any]]:
    """
    Compile a full plan to a SELECT.

    Ties (and unsorted queries) fall back to insertion order so results match
    the in-memory store's stable ordering.
    """
    where, params = compile_where(plan.predicates)
    order = ["created_at ASC", "id ASC"]
    if plan.sort is not None:
        direction = "DESC NULLS LAST" if plan.sort.descending else "ASC NULLS FIRST"
        order.insert(0, f"{plan.sort.field} {direction}")
    sql = f"SELECT {_SELECT_COLUMNS} FROM {TABLE}{where} ORDER BY {', '.join(order)}"
    if plan.limit:
        sql += " LIMIT %s"
        params.append(plan.limit)
    if plan.skip:
        sql += " OFFSET %s"
        params.append(plan.skip)
    return sql, params


def compile_count(plan: QueryPlan) -> Tuple[str, List[Any]]:
    where, params = compile_where(plan.predicates)
    return f"SELECT count(*) AS total FROM {TABLE}{where}", params


def _row_values(product: Product) -> Tuple[Any, ...]:
    return tuple(getattr(product, column) for column in COLUMNS)


def _new_id() -> str:
    return uuid.uuid4().hex[:24]


def _duplicate_error(exc: pg_errors.UniqueViolation, submitted: Sequence[Any]) -> DuplicateKeyError:
    """
    Build the duplicate-key error from a unique violation on ``lower(name)``.

    The index reports the lowercased key; the error carries the name as the
    caller spelled it, picked from ``submitted``.
    """
    names = [name for name in submitted if isinstance(name, str)]
    detail = getattr(exc.diag, "message_detail", None) or ""
    match = _DUPLICATE_DETAIL.search(detail)
    if match:
        key = match.group("value").casefold()
        for name in names:
            if name.strip().casefold() == key:
                return DuplicateKeyError({"name": name})
    return DuplicateKeyError({"name": names[0] if names else None})


def _constraint_error(exc: pg_errors.Error) -> ProductValidationError:
    """Map a check or range violation to the validation error both stores raise."""
    message = getattr(exc.diag, "message_primary", None) or str(exc)
    return ProductValidationError([message])


def _raise_if_invalid(data: Mapping[str, Any], partial: bool = False) -> None:
    errors = validate_product(data, partial=partial)
    if errors:
        raise ProductValidationError(errors)


class PostgresProductStore(AbstractProductStore):
    """
    Product store backed by PostgreSQL through an async psycopg pool.

    The store does not own schema migrations beyond ``ensure_schema``; call
    it once after connecting.
    """

    kind: str = "postgres"
    description: str = "Connected to PostgreSQL (data will persist)"

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool

    async def ensure_schema(self) -> None:
        async with self._pool.connection() as conn:
            await conn.execute(SCHEMA_SQL)

    async def _run(self, plan: QueryPlan) -> List[Product]:
        sql, params = compile_select(plan)
        async with self._pool.connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(sql, params)
                rows = await cur.fetchall()
        return [Product.model_validate(row) for row in rows]

    def find(self, filter_spec: Optional[FilterSpec] = None) -> ProductQuery:
        return ProductQuery(self._run, QueryPlan(predicates=parse_filter(filter_spec)))

    async def find_by_id(self, product_id: str) -> Optional[Product]:
        async with self._pool.connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    f"SELECT {_SELECT_COLUMNS} FROM {TABLE} WHERE id = %s", (product_id,)
                )
                row = await cur.fetchone()
        return Product.model_validate(row) if row else None

    async def create(self, data: Mapping[str, Any]) -> Product:
        _raise_if_invalid(data)
        product = build_product(_new_id(), data)
        try:
            async with self._pool.connection() as conn:
                await conn.execute(_INSERT_SQL, _row_values(product))
        except pg_errors.UniqueViolation as exc:
            raise _duplicate_error(exc, [data["name"]]) from exc
        except _CONSTRAINT_ERRORS as exc:
            raise _constraint_error(exc) from exc
        log.debug("Product created", extra={"product_id": product.id, "store": self.kind})
        return product

    async def find_by_id_and_update(
        self,
        product_id: str,
        patch: Mapping[str, Any],
        run_validators: bool = False,
    ) -> Optional[Product]:
        if run_validators:
            _raise_if_invalid(patch, partial=True)
        assignments = ", ".join(f"{column} = %s" for column in COLUMNS[1:])
        try:
            async with self._pool.connection() as conn:
                async with conn.transaction():
                    async with conn.cursor(row_factory=dict_row) as cur:
                        await cur.execute(
                            f"SELECT {_SELECT_COLUMNS} FROM {TABLE} WHERE id = %s FOR UPDATE",
                            (product_id,),
                        )
                        row = await cur.fetchone()
                        if row is None:
                            return None
                        updated = apply_update(Product.model_validate(row), patch)
                        await cur.execute(
                            f"UPDATE {TABLE} SET {assignments} WHERE id = %s",
                            (*_row_values(updated)[1:], product_id),
                        )
        except pg_errors.UniqueViolation as exc:
            raise _duplicate_error(exc, [patch.get("name")]) from exc
        except _CONSTRAINT_ERRORS as exc:
            raise _constraint_error(exc) from exc
        log.debug("Product updated", extra={"product_id": product_id, "store": self.kind})
        return updated

    async def find_by_id_and_delete(self, product_id: str) -> Optional[Product]:
        async with self._pool.connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    f"DELETE FROM {TABLE} WHERE id = %s RETURNING {_SELECT_COLUMNS}",
                    (product_id,),
                )
                row = await cur.fetchone()
        if row is None:
            return None
        log.debug("Product deleted", extra={"product_id": product_id, "store": self.kind})
        return Product.model_validate(row)

    async def count_documents(self, filter_spec: Optional[FilterSpec] = None) -> int:
        sql, params = compile_count(QueryPlan(predicates=parse_filter(filter_spec)))
        async with self._pool.connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(sql, params)
                row = await cur.fetchone()
        return int(row["total"])

    async def insert_many(self, items: Sequence[Mapping[str, Any]]) -> List[Product]:
        messages: List[str] = []
        for position, item in enumerate(items, start=1):
            messages.extend(f"Item {position}: {error}" for error in validate_product(item))
        if messages:
            raise ProductValidationError(messages)

        seen = set()
        for item in items:
            key = item["name"].strip().casefold()
            if key in seen:
                raise DuplicateKeyError({"name": item["name"]})
            seen.add(key)

        products = [build_product(_new_id(), item) for item in items]
        if not products:
            return []
        try:
            async with self._pool.connection() as conn:
                async with conn.transaction():
                    async with conn.cursor() as cur:
                        await cur.executemany(_INSERT_SQL, [_row_values(p) for p in products])
        except pg_errors.UniqueViolation as exc:
            raise _duplicate_error(exc, [item["name"] for item in items]) from exc
        except _CONSTRAINT_ERRORS as exc:
            raise _constraint_error(exc) from exc
        log.debug("Products inserted", extra={"count": len(products), "store": self.kind})
        return products

    async def delete_many(self, filter_spec: FilterSpec) -> DeleteResult:
        product_ids = ids_from_delete_filter(filter_spec)
        if not product_ids:
            return DeleteResult(deleted_count=0)
        async with self._pool.connection() as conn:
            cur = await conn.execute(f"DELETE FROM {TABLE} WHERE id = ANY(%s)", (product_ids,))
            deleted = cur.rowcount
        log.debug("Products deleted", extra={"count": deleted, "store": self.kind})
        return DeleteResult(deleted_count=deleted)

    async def close(self) -> None:
        await self._pool.close()


__all__ = [
    "COLUMNS",
    "PostgresProductStore",
    "SCHEMA_SQL",
    "compile_count",
    "compile_select",
    "compile_where",
]
