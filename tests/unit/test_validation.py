from __future__ import annotations

from datetime import datetime, timezone

import pytest

from stockkeeper.domain.errors import ProductValidationError
from stockkeeper.domain.models import Product, apply_update, build_product, validate_product

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def test_valid_product_has_no_errors():
    assert validate_product({"name": "Stapler", "price": 4.5, "quantity": 3}) == []


def test_missing_name_and_price_are_both_reported():
    errors = validate_product({})

    assert errors == ["Product name is required", "Valid price is required"]


def test_blank_name_is_required_error():
    assert "Product name is required" in validate_product({"name": "   ", "price": 1})


@pytest.mark.parametrize("price", [-0.01, None, "abc", True])
def test_invalid_price(price):
    assert validate_product({"name": "Pen", "price": price}) == ["Valid price is required"]


def test_zero_price_and_numeric_string_price_are_valid():
    assert validate_product({"name": "Freebie", "price": 0}) == []
    assert validate_product({"name": "Pen", "price": "2.50"}) == []


@pytest.mark.parametrize("quantity", [-1, 2.5, "3", False])
def test_invalid_quantity(quantity):
    errors = validate_product({"name": "Pen", "price": 1, "quantity": quantity})
    assert errors == ["Quantity must be a positive integer"]


def test_integral_float_quantity_is_accepted():
    assert validate_product({"name": "Pen", "price": 1, "quantity": 4.0}) == []


def test_length_limits_are_aggregated():
    errors = validate_product(
        {
            "name": "n" * 101,
            "price": 1,
            "category": "c" * 51,
            "description": "d" * 501,
            "supplier": "s" * 101,
        }
    )

    assert errors == [
        "Product name cannot exceed 100 characters",
        "Category cannot exceed 50 characters",
        "Description cannot exceed 500 characters",
        "Supplier name cannot exceed 100 characters",
    ]


def test_lengths_at_the_limit_pass():
    data = {
        "name": "n" * 100,
        "price": 1,
        "category": "c" * 50,
        "description": "d" * 500,
        "supplier": "s" * 100,
    }
    assert validate_product(data) == []


def test_non_string_text_fields_are_type_errors():
    errors = validate_product({"name": 12, "price": 1, "category": 7})

    assert errors == ["Product name must be a string", "Category must be a string"]


def test_partial_validation_ignores_missing_required_fields():
    assert validate_product({"quantity": 5}, partial=True) == []
    assert validate_product({"price": -5}, partial=True) == ["Valid price is required"]
    assert validate_product({"name": ""}, partial=True) == ["Product name is required"]


def test_build_product_sets_identifier_and_matching_timestamps():
    product = build_product("abc", {"name": "  Pen  ", "price": 1, "colour": "red"}, now=NOW)

    assert product.id == "abc"
    assert product.name == "Pen"
    assert product.quantity == 0
    assert product.created_at == product.updated_at == NOW
    assert not hasattr(product, "colour")


def test_build_product_wraps_schema_errors():
    with pytest.raises(ProductValidationError):
        build_product("abc", {"name": "Pen", "price": {"amount": 1}}, now=NOW)


def test_apply_update_refreshes_only_updated_at_and_keeps_identity():
    product = build_product("abc", {"name": "Pen", "price": 1, "category": "Office"}, now=NOW)
    later = datetime(2024, 3, 2, tzinfo=timezone.utc)

    updated = apply_update(
        product,
        {"price": 2, "id": "hijack", "created_at": later},
        now=later,
    )

    assert updated.id == "abc"
    assert updated.price == 2
    assert updated.category == "Office"
    assert updated.created_at == NOW
    assert updated.updated_at == later


def test_document_uses_wire_field_names():
    document = build_product("abc", {"name": "Pen", "price": 1}, now=NOW).to_document()

    assert document["_id"] == "abc"
    assert document["createdAt"].startswith("2024-03-01T12:00:00")
    assert "updatedAt" in document
    assert Product.model_validate(document).id == "abc"


def test_validation_error_message_joins_all_messages():
    exc = ProductValidationError(["a", "b"])

    assert str(exc) == "a, b"
    assert exc.messages == ["a", "b"]
    assert exc.name == "ValidationError"
