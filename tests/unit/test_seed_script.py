from __future__ import annotations

import csv
from pathlib import Path

from typer.testing import CliRunner

from scripts import seed_products
from stockkeeper.store.postgres import COLUMNS

runner = CliRunner()


def _read(path: Path) -> list[dict[str, str]]:
    with path.open(encoding="utf-8", newline="") as f:
        return list(csv.DictReader(f))


def test_generated_rows_are_unique_and_valid(tmp_path: Path) -> None:
    csv_path = tmp_path / "products.csv"

    seed_products._generate_rows_csv(csv_path, rows=25, batch_size=7, seed=1)

    rows = _read(csv_path)
    assert list(rows[0].keys()) == list(COLUMNS)
    assert len(rows) == 25
    assert len({row["name"].lower() for row in rows}) == 25
    assert len({row["id"] for row in rows}) == 25
    assert all(float(row["price"]) >= 0 for row in rows)
    assert all(int(row["quantity"]) >= 0 for row in rows)


def test_generation_is_deterministic_for_a_seed(tmp_path: Path) -> None:
    first, second = tmp_path / "a.csv", tmp_path / "b.csv"

    seed_products._generate_rows_csv(first, rows=10, batch_size=3, seed=7)
    seed_products._generate_rows_csv(second, rows=10, batch_size=3, seed=7)

    assert first.read_text(encoding="utf-8") == second.read_text(encoding="utf-8")


def test_no_load_only_writes_csv(tmp_path: Path, monkeypatch) -> None:
    def fail_copy(*args, **kwargs):
        raise AssertionError("load must be skipped")

    monkeypatch.setattr(seed_products, "_copy_into_db", fail_copy)
    output = tmp_path / "out" / "products.csv"

    result = runner.invoke(seed_products.app, ["--rows", "5", "--output", str(output), "--no-load"])

    assert result.exit_code == 0
    assert "Skipping load" in result.stdout
    assert len(_read(output)) == 5
