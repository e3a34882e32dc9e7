"""
In-process product collection.

Holds records in insertion order and hands out identifiers. The collection is
a plain container: it does no validation and no locking. ``ProductFallback``
owns one and serialises every access to it.
"""

from __future__ import annotations

import itertools
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from stockkeeper.domain.models import Product, build_product, utcnow
from stockkeeper.store.seed import ID_PREFIX, seed_products


class IdGenerator:
    """Sequential string identifiers: ``<prefix><n>`` for n = start, start+1, ..."""

    def __init__(self, prefix: str = ID_PREFIX, start: int = 1) -> None:
        self._prefix = prefix
        self._counter = itertools.count(start)

    def __call__(self) -> str:
        return f"{self._prefix}{next(self._counter)}"


class InMemoryCollection:
    """
    Ordered records of one entity type.

    Parameters
    ----------
    records : iterable[Product] | None
        Initial records. ``None`` loads the seed catalogue.
    id_generator : IdGenerator | None
        Source of new identifiers. Defaults to one that continues after the
        initial records.
    """

    def __init__(
        self,
        records: Optional[Iterable[Product]] = None,
        id_generator: Optional[IdGenerator] = None,
    ) -> None:
        self._records: List[Product] = list(seed_products() if records is None else records)
        self._next_id = id_generator or IdGenerator(start=len(self._records) + 1)

    def __len__(self) -> int:
        return len(self._records)

    def snapshot(self) -> List[Product]:
        return list(self._records)

    def _new_id(self) -> str:
        taken = {record.id for record in self._records}
        while True:
            candidate = self._next_id()
            if candidate not in taken:
                return candidate

    def _index_of(self, product_id: str) -> int:
        for index, record in enumerate(self._records):
            if record.id == product_id:
                return index
        return -1

    def get(self, product_id: str) -> Optional[Product]:
        index = self._index_of(product_id)
        return self._records[index] if index >= 0 else None

    def name_taken(self, name: Any, exclude_id: Optional[str] = None) -> bool:
        """Case-insensitive name lookup, ignoring the record ``exclude_id``."""
        if not isinstance(name, str):
            return False
        wanted = name.strip().casefold()
        return any(
            record.name.casefold() == wanted and record.id != exclude_id
            for record in self._records
        )

    def insert(self, data: Mapping[str, Any], now: Optional[datetime] = None) -> Product:
        product = build_product(self._new_id(), data, now=now)
        self._records.append(product)
        return product

    def insert_all(self, items: Sequence[Mapping[str, Any]]) -> List[Product]:
        """Build every record first so a construction failure appends nothing."""
        now = utcnow()
        built = [build_product(self._new_id(), data, now=now) for data in items]
        self._records.extend(built)
        return built

    def replace(self, product: Product) -> None:
        index = self._index_of(product.id)
        if index < 0:
            raise KeyError(product.id)
        self._records[index] = product

    def remove(self, product_id: str) -> Optional[Product]:
        index = self._index_of(product_id)
        if index < 0:
            return None
        return self._records.pop(index)

    def remove_all(self, product_ids: Iterable[str]) -> int:
        doomed = set(product_ids)
        before = len(self._records)
        self._records = [record for record in self._records if record.id not in doomed]
        return before - len(self._records)

    def reset(self, records: Optional[Iterable[Product]] = None) -> None:
        """Reload the seed catalogue (or ``records``) and restart identifiers after it."""
        self._records = list(seed_products() if records is None else records)
        self._next_id = IdGenerator(start=len(self._records) + 1)


__all__ = ["IdGenerator", "InMemoryCollection"]
