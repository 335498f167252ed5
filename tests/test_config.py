from __future__ import annotations

from datetime import datetime

import pytest

from app.config import DEFAULT_CRYPTO_TIMEOUT_SECONDS, DEFAULT_DATABASE_URL, Settings
from app.errors import ValidationError
from app.services.date_ranges import get_month_range


def test_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("DATABASE_URL", "COINGECKO_BASE_URL", "CRYPTO_TIMEOUT_SECONDS", "STASH_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings.from_env()
    assert settings.database_url == DEFAULT_DATABASE_URL
    assert settings.crypto_timeout_seconds == 15.0
    assert settings.log_level == "INFO"


def test_settings_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "sqlite:///tmp/test.db")
    monkeypatch.setenv("COINGECKO_BASE_URL", "https://example.test/api/")
    monkeypatch.setenv("CRYPTO_TIMEOUT_SECONDS", "3.5")

    settings = Settings.from_env()
    assert settings.database_url == "sqlite:///tmp/test.db"
    assert settings.coingecko_base_url == "https://example.test/api"
    assert settings.crypto_timeout_seconds == 3.5


@pytest.mark.parametrize("raw", ["soon", "-1", "0"])
def test_invalid_timeout_falls_back(monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
    monkeypatch.setenv("CRYPTO_TIMEOUT_SECONDS", raw)
    assert Settings.from_env().crypto_timeout_seconds == DEFAULT_CRYPTO_TIMEOUT_SECONDS


def test_month_range() -> None:
    start, end, label = get_month_range("2025-12")
    assert (start, end, label) == (datetime(2025, 12, 1), datetime(2026, 1, 1), "2025-12")


@pytest.mark.parametrize("raw", ["2025-13", "2025", "jan-2025", "2025-00", "0000-05", "9999-12"])
def test_month_range_rejects_garbage(raw: str) -> None:
    with pytest.raises(ValidationError):
        get_month_range(raw)
