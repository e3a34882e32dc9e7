"""Fixed catalogue loaded into the in-memory store at construction."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List

from stockkeeper.domain.models import Product

ID_PREFIX = "64f1a2b3c4d5e6f7g8h9i0j"


def _ts(value: str) -> datetime:
    return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)


_SEED_ROWS = [
    ("Wireless Mouse", 50, 29.99, "Electronics",
     "Ergonomic wireless mouse with USB receiver", "TechCorp", "2024-01-15T10:30:00"),
    ("Mechanical Keyboard", 25, 79.99, "Electronics",
     "RGB mechanical keyboard with blue switches", "KeyboardCorp", "2024-01-16T14:20:00"),
    ("4K Monitor", 10, 299.99, "Electronics",
     "27-inch 4K UHD monitor with HDR support", "DisplayTech", "2024-01-17T09:15:00"),
    ("Office Chair", 0, 199.99, "Furniture",
     "Ergonomic office chair with lumbar support", "FurniturePlus", "2024-01-18T16:45:00"),
    ("Desk Lamp", 75, 39.99, "Lighting",
     "LED desk lamp with adjustable brightness", "LightCorp", "2024-01-19T11:30:00"),
]


def seed_products() -> List[Product]:
    """Return fresh copies of the seed catalogue, numbered 1..N."""
    products = []
    for number, (name, quantity, price, category, description, supplier, created) in enumerate(
        _SEED_ROWS, start=1
    ):
        products.append(
            Product(
                id=f"{ID_PREFIX}{number}",
                name=name,
                quantity=quantity,
                price=price,
                category=category,
                description=description,
                supplier=supplier,
                created_at=_ts(created),
                updated_at=_ts(created),
            )
        )
    return products


__all__ = ["ID_PREFIX", "seed_products"]
