"""
Catalogue generation and loading script for stockkeeper.

Implements deterministic pseudo-random product generation, CSV emission, and
Postgres COPY loading into ``public.products``.
"""

from __future__ import annotations

import csv
import random
import sys
import tempfile
import time
import uuid
from datetime import UTC, datetime, timedelta
from pathlib import Path

import typer

from stockkeeper.config import build_dsn
from stockkeeper.infrastructure.db_factory import get_sync_connection
from stockkeeper.store.postgres import COLUMNS, SCHEMA_SQL

app = typer.Typer(help="Generate a synthetic product catalogue and load it into Postgres (CSV + COPY).")

_CATEGORIES = {
    "Electronics": ["Mouse", "Keyboard", "Monitor", "Headset", "Webcam", "Dock"],
    "Furniture": ["Chair", "Desk", "Shelf", "Cabinet", "Stool"],
    "Lighting": ["Lamp", "Bulb", "Strip Light", "Lantern"],
    "Stationery": ["Notebook", "Pen Set", "Stapler", "Binder"],
}
_ADJECTIVES = ["Wireless", "Ergonomic", "Compact", "Deluxe", "Classic", "Pro", "Portable", "Smart"]
_SUPPLIERS = ["TechCorp", "KeyboardCorp", "DisplayTech", "FurniturePlus", "LightCorp", "PaperWorks"]


def _build_dsn(dsn_override: str | None) -> str:
    if dsn_override:
        return dsn_override
    return build_dsn()


def _generate_rows_csv(csv_path: Path, rows: int, batch_size: int, seed: int) -> None:
    """
    Write ``rows`` products to ``csv_path``.

    Names are unique case-insensitively (a running number is appended), so
    the file loads cleanly under the ``lower(name)`` unique index.
    """
    rng = random.Random(seed)
    start = datetime(2024, 1, 1, tzinfo=UTC)

    with csv_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(COLUMNS)

        buffer: list[list[str]] = []
        for i in range(rows):
            category = rng.choice(sorted(_CATEGORIES))
            item = rng.choice(_CATEGORIES[category])
            name = f"{rng.choice(_ADJECTIVES)} {item} {i + 1:05d}"
            created = (start + timedelta(minutes=rng.randint(0, 525_600))).isoformat()
            buffer.append(
                [
                    uuid.UUID(int=rng.getrandbits(128)).hex[:24],
                    name,
                    str(rng.choice([0, rng.randint(1, 500)])),
                    f"{rng.uniform(1, 1_000):.2f}",
                    category,
                    f"{name} from the {category.lower()} range",
                    rng.choice(_SUPPLIERS),
                    created,
                    created,
                ]
            )
            if len(buffer) >= batch_size:
                writer.writerows(buffer)
                buffer.clear()
        if buffer:
            writer.writerows(buffer)


def _copy_into_db(dsn: str, csv_path: Path, truncate: bool = False) -> int:
    conn = get_sync_connection(dsn)
    try:
        with conn.cursor() as cur:
            cur.execute(SCHEMA_SQL)
            if truncate:
                cur.execute("TRUNCATE TABLE public.products;")
            with cur.copy(
                f"""
                COPY public.products ({", ".join(COLUMNS)})
                FROM STDIN WITH (FORMAT csv, HEADER TRUE)
                """
            ) as copy:
                with csv_path.open("r", encoding="utf-8") as f:
                    for line in f:
                        copy.write(line)
            loaded = cur.rowcount
        conn.commit()
    finally:
        conn.close()
    return loaded


@app.command()
def main(
    rows: int = typer.Option(
        1_000,
        "--rows",
        "-r",
        help="Number of products to generate.",
    ),
    batch_size: int = typer.Option(
        500,
        "--batch-size",
        "-b",
        help="Batch size for CSV buffering during generation.",
    ),
    seed: int = typer.Option(
        42,
        "--seed",
        help="Deterministic RNG seed.",
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Optional CSV output path (if omitted, a temp file will be used).",
    ),
    dsn: str | None = typer.Option(
        None,
        "--dsn",
        help="Optional DSN override for Postgres.",
    ),
    truncate: bool = typer.Option(
        False,
        "--truncate",
        help="Empty the products table before loading.",
    ),
    no_load: bool = typer.Option(
        False,
        "--no-load",
        help="Only generate CSV; skip loading into Postgres.",
    ),
) -> None:
    """
    Generate a synthetic catalogue and optionally load it into Postgres using COPY.
    """
    start = time.perf_counter()
    if output:
        csv_path = output
        csv_path.parent.mkdir(parents=True, exist_ok=True)
    else:
        tmpdir = Path(tempfile.mkdtemp(prefix="stockkeeper_csv_"))
        csv_path = tmpdir / "products.csv"

    typer.echo(f"Generating {rows:,} products -> {csv_path} (batch={batch_size}, seed={seed})")
    _generate_rows_csv(csv_path, rows=rows, batch_size=batch_size, seed=seed)
    typer.echo(f"CSV generation completed in {time.perf_counter() - start:.2f}s")

    if no_load:
        typer.echo("Skipping load (no-load flag set).")
        return

    load_start = time.perf_counter()
    typer.echo("Loading CSV into Postgres via COPY...")
    loaded = _copy_into_db(_build_dsn(dsn), csv_path, truncate=truncate)
    typer.echo(f"Loaded {loaded:,} products in {time.perf_counter() - load_start:.2f}s.")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
