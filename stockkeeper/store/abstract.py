"""
Store interfaces and result contracts for stockkeeper.

Concrete stores (the in-memory fallback and PostgreSQL) implement the
ProductStore protocol so the catalog service can use either interchangeably.
Every operation except ``find`` is a coroutine; ``find`` returns a chainable
``ProductQuery`` that is awaited to run.
"""

from __future__ import annotations

import abc
from typing import Any, List, Mapping, Optional, Protocol, Sequence, TypedDict, runtime_checkable

from stockkeeper.domain.models import Product
from stockkeeper.store.query import FilterSpec, ProductQuery


class DeleteResult(TypedDict):
    """Outcome of a bulk delete."""

    deleted_count: int


@runtime_checkable
class ProductStore(Protocol):
    """
    Common interface all product stores must implement.

    Attributes
    ----------
    kind : str
        A short machine-friendly identifier ("memory", "postgres").
    description : str
        A human-friendly summary used by the health report.
    """

    kind: str
    description: str

    def find(self, filter_spec: Optional[FilterSpec] = None) -> ProductQuery:
        """
        Build a query for products matching every constraint of ``filter_spec``.

        Raises
        ------
        InvalidFilterError
            If the filter names an unknown field or operator.
        """
        ...

    async def find_by_id(self, product_id: str) -> Optional[Product]:
        ...

    async def create(self, data: Mapping[str, Any]) -> Product:
        """
        Insert a product.

        Raises
        ------
        ProductValidationError
            If any field is invalid (all messages are reported together).
        DuplicateKeyError
            If a product with the same name (case-insensitive) exists.
        """
        ...

    async def find_by_id_and_update(
        self,
        product_id: str,
        patch: Mapping[str, Any],
        run_validators: bool = False,
    ) -> Optional[Product]:
        ...

    async def find_by_id_and_delete(self, product_id: str) -> Optional[Product]:
        ...

    async def count_documents(self, filter_spec: Optional[FilterSpec] = None) -> int:
        ...

    async def insert_many(self, items: Sequence[Mapping[str, Any]]) -> List[Product]:
        """Insert every item or none of them."""
        ...

    async def delete_many(self, filter_spec: FilterSpec) -> DeleteResult:
        """Delete by ``{"_id": {"$in": [...]}}``; other filters delete nothing."""
        ...

    async def close(self) -> None:
        ...


class AbstractProductStore(abc.ABC):
    """
    Optional ABC helper for class-based implementations.

    Subclasses set ``kind`` and ``description`` and implement every operation.
    """

    kind: str
    description: str

    @abc.abstractmethod
    def find(self, filter_spec: Optional[FilterSpec] = None) -> ProductQuery:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    async def find_by_id(self, product_id: str) -> Optional[Product]:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    async def create(self, data: Mapping[str, Any]) -> Product:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    async def find_by_id_and_update(
        self,
        product_id: str,
        patch: Mapping[str, Any],
        run_validators: bool = False,
    ) -> Optional[Product]:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    async def find_by_id_and_delete(self, product_id: str) -> Optional[Product]:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    async def count_documents(self, filter_spec: Optional[FilterSpec] = None) -> int:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    async def insert_many(self, items: Sequence[Mapping[str, Any]]) -> List[Product]:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    async def delete_many(self, filter_spec: FilterSpec) -> DeleteResult:  # pragma: no cover
        raise NotImplementedError

    async def close(self) -> None:
        """Release resources held by the store. No-op by default."""


def ids_from_delete_filter(filter_spec: Optional[FilterSpec]) -> Optional[List[str]]:
    """
    Extract the id set from ``{"_id": {"$in": [...]}}``.

    Returns None for any other shape, which bulk deletes treat as "remove nothing".
    """
    if not filter_spec:
        return None
    spec = filter_spec.get("_id", filter_spec.get("id"))
    if not isinstance(spec, Mapping) or "$in" not in spec:
        return None
    values = spec["$in"]
    if isinstance(values, (str, bytes)) or values is None:
        return None
    return [str(value) for value in values]


__all__ = [
    "AbstractProductStore",
    "DeleteResult",
    "ProductStore",
    "ids_from_delete_filter",
]
