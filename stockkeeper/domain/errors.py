"""
Error kinds raised by product stores.

Both the in-memory fallback and the PostgreSQL store raise exactly these, so
request handlers map them to responses without caring which store is active.
"""

from __future__ import annotations

from typing import Any, Dict, List, Sequence

# Code a document database reports for a unique-index violation.
DUPLICATE_KEY_CODE = 11000


class StoreError(Exception):
    """Base class for product store errors."""

    status_code: int = 500


class ProductValidationError(StoreError):
    """One or more fields failed validation; carries every message, not just the first."""

    name = "ValidationError"
    status_code = 400

    def __init__(self, messages: Sequence[str]) -> None:
        self.messages: List[str] = list(messages)
        super().__init__(", ".join(self.messages))


class DuplicateKeyError(StoreError):
    """A record with the same unique key already exists."""

    code = DUPLICATE_KEY_CODE
    status_code = 400

    def __init__(self, key_value: Dict[str, Any]) -> None:
        self.key_value = dict(key_value)
        field = next(iter(self.key_value), "key")
        super().__init__(f"Duplicate field value: {field}")

    @property
    def field(self) -> str:
        return next(iter(self.key_value), "key")


class InvalidFilterError(StoreError, ValueError):
    """A filter or sort specification names an unknown field or operator."""

    status_code = 400


class StoreUnavailableError(StoreError):
    """The primary store could not be reached."""

    status_code = 503


__all__ = [
    "DUPLICATE_KEY_CODE",
    "DuplicateKeyError",
    "InvalidFilterError",
    "ProductValidationError",
    "StoreError",
    "StoreUnavailableError",
]
