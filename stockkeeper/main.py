from __future__ import annotations

import asyncio
import json
import sys
from typing import Any, Awaitable, Callable, Optional, TypeVar

import typer

from stockkeeper.catalog import list_products
from stockkeeper.config import get_settings
from stockkeeper.domain.errors import StoreUnavailableError
from stockkeeper.domain.models import Product
from stockkeeper.reports import inventory_report, print_inventory_report, print_products
from stockkeeper.store.selection import StoreHandle, health as health_payload, open_store
from stockkeeper.utils.logging import configure_logging

app = typer.Typer(help="stockkeeper inventory CLI.")

T = TypeVar("T")


def _run_with_store(work: Callable[[StoreHandle], Awaitable[T]]) -> T:
    """Open the configured store, run ``work`` against it, and always close it."""
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)

    async def runner() -> T:
        handle = await open_store(settings)
        try:
            return await work(handle)
        finally:
            await handle.close()

    try:
        return asyncio.run(runner())
    except StoreUnavailableError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"backend={settings.db_backend} env={settings.app_env} | "
        f"page_size={settings.page_size_default} (max {settings.page_size_max}) "
        f"low_stock<={settings.low_stock_threshold}"
    )


@app.command()
def health() -> None:
    """
    Select the store as the service would at startup and report which one is active.
    """

    async def work(handle: StoreHandle) -> dict:
        return health_payload(handle)

    typer.echo(json.dumps(_run_with_store(work), indent=2))


@app.command()
def products(
    search: Optional[str] = typer.Option(None, "--search", "-q", help="Name contains (case-insensitive)."),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Category contains."),
    supplier: Optional[str] = typer.Option(None, "--supplier", help="Supplier contains."),
    min_price: Optional[float] = typer.Option(None, "--min-price", help="Inclusive lower price bound."),
    max_price: Optional[float] = typer.Option(None, "--max-price", help="Inclusive upper price bound."),
    sort_by: str = typer.Option("createdAt", "--sort-by", help="Field to sort by."),
    sort_order: str = typer.Option("desc", "--sort-order", help="asc or desc."),
    page: int = typer.Option(1, "--page", "-p", min=1),
    limit: Optional[int] = typer.Option(None, "--limit", "-l", min=1),
    as_json: bool = typer.Option(False, "--json", help="Print the raw response envelope."),
) -> None:
    """
    List products with filters, sorting and pagination.
    """
    query: dict[str, Any] = {
        "search": search,
        "category": category,
        "supplier": supplier,
        "min_price": min_price,
        "max_price": max_price,
        "sort_by": sort_by,
        "sort_order": sort_order,
        "page": page,
        "limit": limit,
    }

    async def work(handle: StoreHandle):
        return await list_products(handle.store, {k: v for k, v in query.items() if v is not None})

    response = _run_with_store(work)
    if as_json or response.status != 200:
        typer.echo(json.dumps(response.body, indent=2))
        if response.status != 200:
            raise typer.Exit(code=1)
        return

    pagination = response.body["pagination"]
    print_products(
        [Product.model_validate(doc) for doc in response.body["data"]],
        title=(
            f"Products (page {pagination['current_page']}/{max(pagination['total_pages'], 1)}, "
            f"{pagination['total_products']} total)"
        ),
    )


@app.command()
def report(
    category: Optional[str] = typer.Option(None, "--category", "-c"),
    supplier: Optional[str] = typer.Option(None, "--supplier"),
    low_stock: bool = typer.Option(False, "--low-stock", help="Only list low-stock products."),
    threshold: Optional[int] = typer.Option(None, "--threshold", min=0),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON."),
) -> None:
    """
    Inventory report: totals, stock value and per-category breakdown.
    """

    async def work(handle: StoreHandle) -> dict:
        return await inventory_report(
            handle.store,
            category=category,
            supplier=supplier,
            low_stock=low_stock,
            threshold=threshold,
        )

    result = _run_with_store(work)
    if as_json:
        typer.echo(json.dumps(result, indent=2))
    else:
        print_inventory_report(result)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
