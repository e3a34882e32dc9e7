"""
stockkeeper - product inventory backend with an in-memory fallback store.

This package provides the persistence and service layers of a small-business
inventory system:

- A PostgreSQL product store (primary persistence)
- An in-process fallback store with the same query surface
  (filter, sort, skip, limit, count, bulk insert/delete)
- Startup selection between the two, reported by the health check
- A catalog service producing the API's response envelopes
- An inventory report and a CLI
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from stockkeeper.catalog import ApiResponse, error_response, list_products
from stockkeeper.config import Settings, get_settings
from stockkeeper.domain import (
    DuplicateKeyError,
    InvalidFilterError,
    Product,
    ProductValidationError,
    StoreError,
    validate_product,
)
from stockkeeper.reports import inventory_report
from stockkeeper.store import (
    PostgresProductStore,
    ProductFallback,
    ProductStore,
    StoreHandle,
    open_store,
)
from stockkeeper.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Domain
    "Product",
    "validate_product",
    "StoreError",
    "ProductValidationError",
    "DuplicateKeyError",
    "InvalidFilterError",
    # Stores
    "ProductStore",
    "ProductFallback",
    "PostgresProductStore",
    "StoreHandle",
    "open_store",
    # Services
    "ApiResponse",
    "error_response",
    "list_products",
    "inventory_report",
    # Logging
    "configure_logging",
    "get_logger",
]
