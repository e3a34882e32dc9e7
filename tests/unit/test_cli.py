from __future__ import annotations

import json
import logging

import pytest
from typer.testing import CliRunner

from stockkeeper import main as cli

runner = CliRunner()


@pytest.fixture(autouse=True)
def memory_backend(monkeypatch):
    monkeypatch.setenv("DB_BACKEND", "memory")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.setenv("COLUMNS", "200")
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield
    root.handlers = saved_handlers
    root.setLevel(saved_level)


def test_info_shows_backend():
    result = runner.invoke(cli.app, ["info"])

    assert result.exit_code == 0
    assert "backend=memory" in result.stdout


def test_health_reports_memory_store():
    result = runner.invoke(cli.app, ["health"])

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["database"]["type"] == "memory"


def test_products_json_envelope():
    result = runner.invoke(
        cli.app,
        ["products", "--min-price", "30", "--max-price", "100", "--sort-by", "price", "--sort-order", "asc", "--json"],
    )

    assert result.exit_code == 0
    body = json.loads(result.stdout)
    assert [doc["name"] for doc in body["data"]] == ["Desk Lamp", "Mechanical Keyboard"]
    assert body["pagination"]["total_products"] == 2


def test_products_table_output():
    result = runner.invoke(cli.app, ["products", "--search", "mouse"])

    assert result.exit_code == 0
    assert "Wireless Mouse" in result.stdout


def test_products_bad_sort_field_exits_non_zero():
    result = runner.invoke(cli.app, ["products", "--sort-by", "colour"])

    assert result.exit_code == 1
    assert json.loads(result.stdout)["success"] is False


def test_report_json():
    result = runner.invoke(cli.app, ["report", "--json", "--threshold", "10"])

    assert result.exit_code == 0
    report = json.loads(result.stdout)
    assert report["summary"]["total_products"] == 5
    assert report["summary"]["out_of_stock_count"] == 1


def test_postgres_backend_unreachable_exits_with_error(monkeypatch):
    async def unreachable(settings, dsn=None):
        raise OSError("connection refused")

    monkeypatch.setenv("DB_BACKEND", "postgres")
    monkeypatch.setattr("stockkeeper.store.selection._open_postgres", unreachable)

    result = runner.invoke(cli.app, ["health"])

    assert result.exit_code == 1
    assert "PostgreSQL is not reachable" in result.output
