"""
Domain models for stockkeeper.

Defines the product record schema shared by every store, plus the stateless
field validation applied before inserts and validated updates. Records are
frozen; updates produce a new instance through ``apply_update``.
"""
from __future__ import annotations

import math
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from stockkeeper.domain.errors import ProductValidationError

# Fields a caller may set; id and timestamps are owned by the store.
WRITABLE_FIELDS = ("name", "quantity", "price", "category", "description", "supplier")
TEXT_FIELDS = ("name", "category", "description", "supplier")
NUMERIC_FIELDS = ("price", "quantity")
TIMESTAMP_FIELDS = ("created_at", "updated_at")

# Wire names used by the API and the filter/sort vocabulary.
FIELD_ALIASES = {
    "_id": "id",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}

# Upper bound of the integer quantity column.
MAX_QUANTITY = 2_147_483_647

_MAX_LENGTHS = {
    "name": (100, "Product name cannot exceed 100 characters"),
    "category": (50, "Category cannot exceed 50 characters"),
    "description": (500, "Description cannot exceed 500 characters"),
    "supplier": (100, "Supplier name cannot exceed 100 characters"),
}

_TYPE_MESSAGES = {
    "name": "Product name must be a string",
    "category": "Category must be a string",
    "description": "Description must be a string",
    "supplier": "Supplier name must be a string",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def canonical_field(name: str) -> str:
    """Map a wire field name (``_id``, ``createdAt``) to its attribute name."""
    return FIELD_ALIASES.get(name, name)


class Product(BaseModel):
    """
    A single product record.

    Serialises with the wire aliases ``_id``, ``createdAt`` and ``updatedAt``.
    """

    id: str = Field(..., alias="_id", description="Unique, immutable identifier.")
    name: str = Field(..., description="Display name; unique case-insensitively.")
    quantity: int = Field(0, ge=0, le=MAX_QUANTITY, description="Units in stock.")
    price: float = Field(..., ge=0, description="Unit price.")
    category: Optional[str] = Field(None, description="Free-text category label.")
    description: Optional[str] = Field(None, description="Free-text description.")
    supplier: Optional[str] = Field(None, description="Supplier name.")
    created_at: datetime = Field(..., alias="createdAt", description="Creation timestamp.")
    updated_at: datetime = Field(..., alias="updatedAt", description="Last modification timestamp.")

    model_config = {
        "frozen": True,
        "populate_by_name": True,
        "extra": "ignore",
    }

    @field_validator("name", "category", "description", "supplier", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("created_at", "updated_at")
    @classmethod
    def _ensure_aware(cls, value: datetime) -> datetime:
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

    def to_document(self) -> Dict[str, Any]:
        """JSON-ready mapping using the wire field names."""
        return self.model_dump(by_alias=True, mode="json")


def writable_fields(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Keep only the fields a caller is allowed to set."""
    return {key: value for key, value in data.items() if key in WRITABLE_FIELDS}


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return None
    else:
        return None
    return None if math.isnan(number) else number


def _is_non_negative_integer(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value >= 0
    if isinstance(value, float):
        return value.is_integer() and value >= 0
    return False


def validate_product(data: Mapping[str, Any], partial: bool = False) -> List[str]:
    """
    Check product fields and return every violation found.

    With ``partial=True`` (updates) missing fields are not violations, but any
    field that is present is checked the same way as on insert.
    """
    errors: List[str] = []

    name = data.get("name")
    if "name" in data or not partial:
        if name is not None and not isinstance(name, str):
            errors.append(_TYPE_MESSAGES["name"])
        elif not name or not name.strip():
            errors.append("Product name is required")

    if "price" in data or not partial:
        price = _as_number(data.get("price"))
        if price is None or price < 0:
            errors.append("Valid price is required")

    if data.get("quantity") is not None and not _is_non_negative_integer(data["quantity"]):
        errors.append("Quantity must be a positive integer")

    for field, (limit, message) in _MAX_LENGTHS.items():
        value = data.get(field)
        if value is None:
            continue
        if not isinstance(value, str):
            if field != "name":
                errors.append(_TYPE_MESSAGES[field])
            continue
        if len(value) > limit:
            errors.append(message)

    return errors


def _construct(fields: Dict[str, Any]) -> Product:
    try:
        return Product.model_validate(fields)
    except PydanticValidationError as exc:
        messages = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]
        raise ProductValidationError(messages) from exc


def build_product(product_id: str, data: Mapping[str, Any], now: Optional[datetime] = None) -> Product:
    """Construct a new record with a fresh identifier and matching timestamps."""
    now = now or utcnow()
    fields = {key: value for key, value in writable_fields(data).items() if value is not None}
    fields.update(id=product_id, created_at=now, updated_at=now)
    return _construct(fields)


def apply_update(product: Product, patch: Mapping[str, Any], now: Optional[datetime] = None) -> Product:
    """
    Merge ``patch`` into ``product`` and refresh ``updated_at`` only.

    The merged record is checked against the schema bounds whether or not the
    patch was validated, so no store can hold a negative quantity or price.
    """
    merged = product.model_dump()
    merged.update(writable_fields(patch))
    merged["updated_at"] = now or utcnow()
    return _construct(merged)


__all__ = [
    "FIELD_ALIASES",
    "MAX_QUANTITY",
    "NUMERIC_FIELDS",
    "TEXT_FIELDS",
    "TIMESTAMP_FIELDS",
    "WRITABLE_FIELDS",
    "Product",
    "apply_update",
    "build_product",
    "canonical_field",
    "utcnow",
    "validate_product",
    "writable_fields",
]
