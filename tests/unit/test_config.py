from __future__ import annotations

import pytest
from pydantic import ValidationError

from stockkeeper.config import Settings, build_dsn, get_settings


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("DB_HOST", "db.internal")
    monkeypatch.setenv("DB_PORT", "6543")
    monkeypatch.setenv("DB_BACKEND", "memory")
    monkeypatch.setenv("PAGE_SIZE_DEFAULT", "25")

    settings = get_settings()

    assert settings.db_host == "db.internal"
    assert settings.db_port == 6543
    assert settings.db_backend == "memory"
    assert settings.page_size_default == 25
    assert get_settings() is settings


def test_unknown_backend_is_rejected(monkeypatch):
    monkeypatch.setenv("DB_BACKEND", "mongo")

    with pytest.raises(ValidationError):
        Settings()


def test_build_dsn_uses_settings():
    settings = Settings(db_user="app", db_password="secret", db_host="h", db_port=1, db_name="inv")

    assert build_dsn(settings) == "postgresql://app:secret@h:1/inv"
