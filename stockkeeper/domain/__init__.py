"""
Domain package for stockkeeper.

Exports the product record model, field validation and the error kinds every
store raises. Keep this package focused on data definitions and validation.
"""

from stockkeeper.domain.errors import (
    DuplicateKeyError,
    InvalidFilterError,
    ProductValidationError,
    StoreError,
    StoreUnavailableError,
)
from stockkeeper.domain.models import Product, validate_product

__all__ = [
    "DuplicateKeyError",
    "InvalidFilterError",
    "Product",
    "ProductValidationError",
    "StoreError",
    "StoreUnavailableError",
    "validate_product",
]
