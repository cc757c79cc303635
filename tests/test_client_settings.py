"""
Tests for `repositories/client.py` settings loading.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from repositories.client import DEFAULT_API_URL, build_store, load_settings


@pytest.fixture
def env(monkeypatch):
    for name in (
        "INVENTORY_API_URL",
        "INVENTORY_API_TIMEOUT",
        "INVENTORY_API_READ_RETRIES",
        "STOCK_CACHE_PATH",
        "UNDO_LEDGER_PATH",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("INVENTORY_API_KEY", "secret")
    monkeypatch.setenv("INVENTORY_SHOP_ID", "shop-1")
    return monkeypatch


def test_defaults(env) -> None:
    settings = load_settings()

    assert settings.api_url == DEFAULT_API_URL
    assert settings.api_key == "secret"
    assert settings.shop_id == "shop-1"
    assert settings.timeout == 30
    assert settings.read_retries == 2
    assert settings.stock_cache_path == Path("variantsData.json")
    assert settings.undo_ledger_path == Path("replaceHistory.json")
    assert settings.log_level == "INFO"


def test_overrides_and_store_construction(env) -> None:
    env.setenv("INVENTORY_API_URL", "https://inventory.test/v1")
    env.setenv("INVENTORY_API_TIMEOUT", "7.5")
    env.setenv("INVENTORY_API_READ_RETRIES", "0")
    env.setenv("UNDO_LEDGER_PATH", "/data/history.json")

    settings = load_settings()
    store = build_store(settings)

    assert settings.timeout == 7.5
    assert settings.undo_ledger_path == Path("/data/history.json")
    assert store.base_url == "https://inventory.test/v1/"
    assert store.shop_id == "shop-1"
    assert store.read_retries == 0


@pytest.mark.parametrize("missing", ["INVENTORY_API_KEY", "INVENTORY_SHOP_ID"])
def test_missing_required_variable(env, missing) -> None:
    env.delenv(missing)

    with pytest.raises(RuntimeError, match=missing):
        load_settings()


def test_malformed_numeric_setting(env) -> None:
    env.setenv("INVENTORY_API_TIMEOUT", "soon")

    with pytest.raises(RuntimeError):
        load_settings()
