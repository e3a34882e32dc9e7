"""
Product stores for stockkeeper.

Re-exports the store interface, the in-memory fallback, the PostgreSQL store
and startup selection so callers can import from `stockkeeper.store` directly.
"""

from stockkeeper.store.abstract import AbstractProductStore, DeleteResult, ProductStore
from stockkeeper.store.fallback import ProductFallback
from stockkeeper.store.memory import IdGenerator, InMemoryCollection
from stockkeeper.store.postgres import PostgresProductStore
from stockkeeper.store.query import ProductQuery, QueryPlan, SortSpec, parse_filter, parse_sort
from stockkeeper.store.selection import StoreHandle, StoreStatus, health, open_store

__all__ = [
    # Interfaces
    "AbstractProductStore",
    "DeleteResult",
    "ProductStore",
    # Queries
    "ProductQuery",
    "QueryPlan",
    "SortSpec",
    "parse_filter",
    "parse_sort",
    # Concrete stores
    "IdGenerator",
    "InMemoryCollection",
    "PostgresProductStore",
    "ProductFallback",
    # Selection
    "StoreHandle",
    "StoreStatus",
    "health",
    "open_store",
]
