"""
In-memory product store used when the primary database is unavailable.

``ProductFallback`` exposes the same call surface as ``PostgresProductStore``
(find / find_by_id / create / find_by_id_and_update / find_by_id_and_delete /
count_documents / insert_many / delete_many) on top of an owned
``InMemoryCollection``. It adds field validation and case-insensitive
duplicate-name detection.

Every read and mutation runs under one lock per collection, so check-then-insert
and lookup-then-replace sequences are atomic whether the caller is an event
loop or a threaded server. Of two inserts racing on one name, the first to take
the lock wins and the second fails with ``DuplicateKeyError``.
"""

from __future__ import annotations

import threading
from typing import Any, List, Mapping, Optional, Sequence, Set

from stockkeeper.domain.errors import DuplicateKeyError, ProductValidationError
from stockkeeper.domain.models import Product, apply_update, validate_product
from stockkeeper.store.abstract import AbstractProductStore, DeleteResult, ids_from_delete_filter
from stockkeeper.store.memory import InMemoryCollection
from stockkeeper.store.query import FilterSpec, ProductQuery, QueryPlan, evaluate, parse_filter
from stockkeeper.utils.logging import get_logger

log = get_logger(__name__)


def _raise_if_invalid(data: Mapping[str, Any], partial: bool = False) -> None:
    errors = validate_product(data, partial=partial)
    if errors:
        raise ProductValidationError(errors)


class ProductFallback(AbstractProductStore):
    """
    Product store backed by process memory.

    Data lives as long as the instance; nothing is persisted.
    """

    kind: str = "memory"
    description: str = "Using in-memory storage (data will not persist)"

    def __init__(self, collection: Optional[InMemoryCollection] = None) -> None:
        self._collection = collection if collection is not None else InMemoryCollection()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._collection)

    async def _run(self, plan: QueryPlan) -> List[Product]:
        with self._lock:
            records = self._collection.snapshot()
        return evaluate(records, plan)

    def find(self, filter_spec: Optional[FilterSpec] = None) -> ProductQuery:
        return ProductQuery(self._run, QueryPlan(predicates=parse_filter(filter_spec)))

    async def find_by_id(self, product_id: str) -> Optional[Product]:
        with self._lock:
            return self._collection.get(product_id)

    async def create(self, data: Mapping[str, Any]) -> Product:
        _raise_if_invalid(data)
        with self._lock:
            if self._collection.name_taken(data["name"]):
                raise DuplicateKeyError({"name": data["name"]})
            product = self._collection.insert(data)
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
        with self._lock:
            current = self._collection.get(product_id)
            if current is None:
                return None
            if "name" in patch and self._collection.name_taken(patch["name"], exclude_id=product_id):
                raise DuplicateKeyError({"name": patch["name"]})
            updated = apply_update(current, patch)
            self._collection.replace(updated)
        log.debug("Product updated", extra={"product_id": product_id, "store": self.kind})
        return updated

    async def find_by_id_and_delete(self, product_id: str) -> Optional[Product]:
        with self._lock:
            removed = self._collection.remove(product_id)
        if removed is not None:
            log.debug("Product deleted", extra={"product_id": product_id, "store": self.kind})
        return removed

    async def count_documents(self, filter_spec: Optional[FilterSpec] = None) -> int:
        plan = QueryPlan(predicates=parse_filter(filter_spec))
        with self._lock:
            records = self._collection.snapshot()
        return len(evaluate(records, plan))

    async def insert_many(self, items: Sequence[Mapping[str, Any]]) -> List[Product]:
        messages: List[str] = []
        for position, item in enumerate(items, start=1):
            messages.extend(f"Item {position}: {error}" for error in validate_product(item))
        if messages:
            raise ProductValidationError(messages)

        with self._lock:
            seen: Set[str] = set()
            for item in items:
                key = item["name"].strip().casefold()
                if key in seen or self._collection.name_taken(item["name"]):
                    raise DuplicateKeyError({"name": item["name"]})
                seen.add(key)
            created = self._collection.insert_all(items)
        log.debug("Products inserted", extra={"count": len(created), "store": self.kind})
        return created

    async def delete_many(self, filter_spec: FilterSpec) -> DeleteResult:
        product_ids = ids_from_delete_filter(filter_spec)
        if product_ids is None:
            return DeleteResult(deleted_count=0)
        with self._lock:
            deleted = self._collection.remove_all(product_ids)
        log.debug("Products deleted", extra={"count": deleted, "store": self.kind})
        return DeleteResult(deleted_count=deleted)

    async def reset(self) -> None:
        """Restore the seed catalogue."""
        with self._lock:
            self._collection.reset()


__all__ = ["ProductFallback"]
