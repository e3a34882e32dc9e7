"""
Inventory report and terminal rendering.

``inventory_report`` computes summary figures over the catalogue using only the
store's public surface, so it works on either backing store.
``print_products`` and ``print_inventory_report`` render results as rich
tables for the CLI.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from stockkeeper.config import get_settings
from stockkeeper.domain.models import Product
from stockkeeper.store.abstract import ProductStore


def _round_money(value: float) -> float:
    return round(value, 2)


async def inventory_report(
    store: ProductStore,
    category: Optional[str] = None,
    supplier: Optional[str] = None,
    low_stock: bool = False,
    threshold: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Summarise stock levels and value.

    Parameters
    ----------
    store : ProductStore
        Store to read from.
    category, supplier : str | None
        Optional case-insensitive substring filters.
    low_stock : bool
        Restrict the listed products to those at or below ``threshold``.
    threshold : int | None
        Low-stock level. Defaults to ``settings.low_stock_threshold``.

    Returns
    -------
    dict
        ``summary``, ``by_category`` and ``data`` (products sorted by name).
    """
    if threshold is None:
        threshold = get_settings().low_stock_threshold

    filter_spec: Dict[str, Any] = {"category": category, "supplier": supplier}
    if low_stock:
        filter_spec["quantity"] = {"$lte": threshold}
    products = await store.find(filter_spec).sort({"name": 1})

    by_category: Dict[str, Dict[str, Any]] = {}
    for product in products:
        key = product.category or "Uncategorized"
        bucket = by_category.setdefault(key, {"category": key, "count": 0, "quantity": 0, "value": 0.0})
        bucket["count"] += 1
        bucket["quantity"] += product.quantity
        bucket["value"] += product.price * product.quantity

    categories = [
        {**bucket, "value": _round_money(bucket["value"])}
        for _, bucket in sorted(by_category.items())
    ]

    return {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "type": "inventory",
        "filters": {"category": category, "supplier": supplier, "low_stock": low_stock},
        "summary": {
            "total_products": len(products),
            "total_value": _round_money(sum(p.price * p.quantity for p in products)),
            "total_quantity": sum(p.quantity for p in products),
            "low_stock_count": sum(1 for p in products if p.quantity <= threshold),
            "out_of_stock_count": sum(1 for p in products if p.quantity == 0),
            "low_stock_threshold": threshold,
        },
        "by_category": categories,
        "data": [p.to_document() for p in products],
    }


def print_products(products: Sequence[Product], title: str = "Products", console: Optional[Console] = None) -> None:
    """Render products as a rich table."""
    console = console or Console()

    if not products:
        console.print("[yellow]No products found.[/yellow]")
        return

    table = Table(title=title, box=box.ROUNDED)
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Name", style="cyan")
    table.add_column("Category", style="blue")
    table.add_column("Supplier")
    table.add_column("Qty", justify="right", style="magenta")
    table.add_column("Price", justify="right", style="green")
    table.add_column("Created", style="dim")

    for product in products:
        qty_style = "red" if product.quantity == 0 else ""
        table.add_row(
            product.id,
            product.name,
            product.category or "",
            product.supplier or "",
            f"[{qty_style}]{product.quantity}[/{qty_style}]" if qty_style else str(product.quantity),
            f"{product.price:,.2f}",
            product.created_at.strftime("%Y-%m-%d"),
        )

    console.print(table)


def print_inventory_report(report: Dict[str, Any], console: Optional[Console] = None) -> None:
    """Render the inventory report summary and per-category breakdown."""
    console = console or Console()
    summary = report["summary"]

    overview = Table(title="Inventory Summary", box=box.ROUNDED, show_header=False)
    overview.add_column("Metric", style="cyan")
    overview.add_column("Value", justify="right", style="bold")
    rows: List[tuple] = [
        ("Products", f"{summary['total_products']:,}"),
        ("Units in stock", f"{summary['total_quantity']:,}"),
        ("Stock value", f"{summary['total_value']:,.2f}"),
        (f"Low stock (<= {summary['low_stock_threshold']})", f"{summary['low_stock_count']:,}"),
        ("Out of stock", f"{summary['out_of_stock_count']:,}"),
    ]
    for label, value in rows:
        overview.add_row(label, value)
    console.print(overview)

    if not report["by_category"]:
        return

    breakdown = Table(title="By Category", box=box.ROUNDED, caption="Sorted by category")
    breakdown.add_column("Category", style="cyan")
    breakdown.add_column("Products", justify="right", style="magenta")
    breakdown.add_column("Units", justify="right")
    breakdown.add_column("Value", justify="right", style="green")
    for bucket in report["by_category"]:
        breakdown.add_row(
            bucket["category"],
            str(bucket["count"]),
            f"{bucket['quantity']:,}",
            f"{bucket['value']:,.2f}",
        )
    console.print(breakdown)


__all__ = ["inventory_report", "print_inventory_report", "print_products"]
