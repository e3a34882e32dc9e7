"""
Catalog service: the controller layer between request handlers and a store.

Each operation takes an injected ProductStore plus request data and returns an
``ApiResponse`` (status code and JSON body) in the envelope the frontend
expects. Store errors are mapped by ``error_response``, which treats the
in-memory and PostgreSQL stores identically.

Usage:
    from stockkeeper.catalog import list_products

    response = await list_products(handle.store, {"search": "mouse", "page": "1"})
    print(response.status, response.body["pagination"])
"""

from __future__ import annotations

import functools
import math
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Literal, Mapping, Optional, Sequence

from pydantic import BaseModel, Field, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from stockkeeper.config import Settings, get_settings
from stockkeeper.domain.errors import (
    DuplicateKeyError,
    ProductValidationError,
    StoreError,
)
from stockkeeper.domain.models import Product
from stockkeeper.store.abstract import ProductStore
from stockkeeper.utils.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class ApiResponse:
    status: int
    body: Dict[str, Any]


class ProductListParams(BaseModel):
    """
    Query parameters accepted by the product list endpoint.

    Accepts snake_case or camelCase names (``min_price`` / ``minPrice``).
    """

    search: Optional[str] = None
    category: Optional[str] = None
    supplier: Optional[str] = None
    min_price: Optional[float] = Field(None, ge=0)
    max_price: Optional[float] = Field(None, ge=0)
    min_quantity: Optional[int] = Field(None, ge=0)
    max_quantity: Optional[int] = Field(None, ge=0)
    sort_by: str = "createdAt"
    sort_order: Literal["asc", "desc"] = "desc"
    page: int = Field(1, ge=1)
    limit: Optional[int] = Field(None, ge=1)

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "ignore",
        "str_strip_whitespace": True,
    }

    @model_validator(mode="before")
    @classmethod
    def _drop_blank_values(cls, data: Any) -> Any:
        """Blank or null values (`?minPrice=`) mean the parameter was not given."""
        if not isinstance(data, Mapping):
            return data
        return {
            key: value
            for key, value in data.items()
            if value is not None and not (isinstance(value, str) and not value.strip())
        }

    def to_filter(self) -> Dict[str, Any]:
        """Build the store filter; unset parameters add no constraint."""
        spec: Dict[str, Any] = {
            "name": self.search,
            "category": self.category,
            "supplier": self.supplier,
        }
        price = _range(self.min_price, self.max_price)
        if price:
            spec["price"] = price
        quantity = _range(self.min_quantity, self.max_quantity)
        if quantity:
            spec["quantity"] = quantity
        return {key: value for key, value in spec.items() if value not in (None, "")}


def _range(low: Optional[float], high: Optional[float]) -> Dict[str, float]:
    bounds: Dict[str, float] = {}
    if low is not None:
        bounds["$gte"] = low
    if high is not None:
        bounds["$lte"] = high
    return bounds


def _documents(products: Iterable[Product]) -> List[Dict[str, Any]]:
    return [product.to_document() for product in products]


def _not_found() -> ApiResponse:
    return ApiResponse(404, {"success": False, "message": "Product not found"})


def error_response(exc: BaseException, settings: Optional[Settings] = None) -> ApiResponse:
    """
    Map an exception to an error envelope.

    Validation and duplicate-key failures are client errors (400) regardless of
    which store raised them; anything unexpected is logged and becomes a 500.
    """
    if isinstance(exc, ProductValidationError):
        return ApiResponse(
            exc.status_code,
            {"success": False, "message": "Validation Error", "errors": exc.messages},
        )
    if isinstance(exc, DuplicateKeyError):
        value = exc.key_value.get(exc.field)
        return ApiResponse(
            exc.status_code,
            {
                "success": False,
                "message": str(exc),
                "errors": [f"Product with {exc.field} '{value}' already exists"],
            },
        )
    if isinstance(exc, PydanticValidationError):
        errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]
        return ApiResponse(400, {"success": False, "message": "Invalid request", "errors": errors})
    if isinstance(exc, StoreError):
        return ApiResponse(exc.status_code, {"success": False, "message": str(exc), "errors": [str(exc)]})

    log.error("Unhandled error in catalog service", exc_info=exc)
    settings = settings or get_settings()
    body: Dict[str, Any] = {"success": False, "message": "Server Error"}
    if settings.app_env == "development":
        body["error"] = str(exc)
    return ApiResponse(500, body)


def _handled(func: Callable[..., Awaitable[ApiResponse]]) -> Callable[..., Awaitable[ApiResponse]]:
    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> ApiResponse:
        try:
            return await func(*args, **kwargs)
        except Exception as exc:  # noqa: BLE001 - every failure becomes an error envelope
            return error_response(exc)

    return wrapper


@_handled
async def list_products(
    store: ProductStore,
    query: Optional[Mapping[str, Any]] = None,
    settings: Optional[Settings] = None,
) -> ApiResponse:
    """Filtered, sorted, paginated product list with pagination metadata."""
    settings = settings or get_settings()
    params = ProductListParams.model_validate(dict(query or {}))
    limit = min(params.limit or settings.page_size_default, settings.page_size_max)
    skip = (params.page - 1) * limit
    filter_spec = params.to_filter()

    products = await (
        store.find(filter_spec)
        .sort({params.sort_by: params.sort_order})
        .skip(skip)
        .limit(limit)
    )
    total = await store.count_documents(filter_spec)
    total_pages = math.ceil(total / limit) if total else 0

    return ApiResponse(
        200,
        {
            "success": True,
            "data": _documents(products),
            "pagination": {
                "current_page": params.page,
                "total_pages": total_pages,
                "total_products": total,
                "limit": limit,
                "has_next": params.page < total_pages,
                "has_prev": params.page > 1,
            },
        },
    )


@_handled
async def get_product(store: ProductStore, product_id: str) -> ApiResponse:
    product = await store.find_by_id(product_id)
    if product is None:
        return _not_found()
    return ApiResponse(200, {"success": True, "data": product.to_document()})


@_handled
async def create_product(store: ProductStore, data: Mapping[str, Any]) -> ApiResponse:
    product = await store.create(data)
    log.info("Product created", extra={"product_id": product.id, "store": store.kind})
    return ApiResponse(
        201,
        {"success": True, "message": "Product created successfully", "data": product.to_document()},
    )


@_handled
async def update_product(store: ProductStore, product_id: str, data: Mapping[str, Any]) -> ApiResponse:
    product = await store.find_by_id_and_update(product_id, data, run_validators=True)
    if product is None:
        return _not_found()
    return ApiResponse(
        200,
        {"success": True, "message": "Product updated successfully", "data": product.to_document()},
    )


@_handled
async def delete_product(store: ProductStore, product_id: str) -> ApiResponse:
    product = await store.find_by_id_and_delete(product_id)
    if product is None:
        return _not_found()
    log.info("Product deleted", extra={"product_id": product_id, "store": store.kind})
    return ApiResponse(
        200,
        {"success": True, "message": "Product deleted successfully", "data": product.to_document()},
    )


@_handled
async def bulk_create(store: ProductStore, items: Sequence[Mapping[str, Any]]) -> ApiResponse:
    if not items:
        return ApiResponse(
            400, {"success": False, "message": "Please provide an array of products"}
        )
    products = await store.insert_many(items)
    log.info("Products created in bulk", extra={"count": len(products), "store": store.kind})
    return ApiResponse(
        201,
        {
            "success": True,
            "message": f"{len(products)} products created successfully",
            "count": len(products),
            "data": _documents(products),
        },
    )


@_handled
async def bulk_delete(store: ProductStore, product_ids: Sequence[str]) -> ApiResponse:
    if not product_ids:
        return ApiResponse(
            400, {"success": False, "message": "Please provide an array of product IDs"}
        )
    result = await store.delete_many({"_id": {"$in": list(product_ids)}})
    deleted = result["deleted_count"]
    log.info("Products deleted in bulk", extra={"count": deleted, "store": store.kind})
    return ApiResponse(
        200,
        {
            "success": True,
            "message": f"{deleted} products deleted successfully",
            "deleted_count": deleted,
        },
    )


__all__ = [
    "ApiResponse",
    "ProductListParams",
    "bulk_create",
    "bulk_delete",
    "create_product",
    "delete_product",
    "error_response",
    "get_product",
    "list_products",
    "update_product",
]
