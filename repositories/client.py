"""
Remote inventory client settings and construction.

This module contains *only* configuration loading and the construction of the
HTTP deliverable store client; repositories import `build_store()` rather than
reading the environment themselves.

Environment variables required:
- INVENTORY_API_KEY: Bearer token for the inventory API (server-side only)
- INVENTORY_SHOP_ID: Shop identifier embedded in every endpoint

Optional:
- INVENTORY_API_URL: Base URL (default: https://api.sellauth.com/v1/)
- INVENTORY_API_TIMEOUT: Request timeout in seconds (default: 30)
- INVENTORY_API_READ_RETRIES: Extra attempts for retryable reads (default: 2)
- STOCK_CACHE_PATH: Stock cache snapshot file (default: variantsData.json)
- UNDO_LEDGER_PATH: Undo ledger file (default: replaceHistory.json)
- LOG_LEVEL: Root log level for entry points (default: INFO)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from repositories.deliverable_store import HttpDeliverableStore

# Look for .env in the project root
env_path = Path(__file__).parent.parent / ".env"

DEFAULT_API_URL = "https://api.sellauth.com/v1/"


@dataclass(frozen=True, slots=True)
class Settings:
    api_url: str
    api_key: str
    shop_id: str
    timeout: float
    read_retries: int
    stock_cache_path: Path
    undo_ledger_path: Path
    log_level: str


def _require(name: str, hint: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing environment variable: {name}. {hint}")
    return value


def load_settings() -> Settings:
    """
    Read settings from the environment (after loading `.env`).

    Raises:
        RuntimeError: If a required variable is missing or a numeric one is malformed.
    """

    load_dotenv(dotenv_path=env_path)

    api_key = _require("INVENTORY_API_KEY", "Set INVENTORY_API_KEY to your inventory API key.")
    shop_id = _require("INVENTORY_SHOP_ID", "Set INVENTORY_SHOP_ID to your shop id.")

    try:
        timeout = float(os.getenv("INVENTORY_API_TIMEOUT", "30"))
        read_retries = int(os.getenv("INVENTORY_API_READ_RETRIES", "2"))
    except ValueError as e:
        raise RuntimeError(f"Invalid numeric inventory API setting: {e}") from e

    return Settings(
        api_url=os.getenv("INVENTORY_API_URL", DEFAULT_API_URL),
        api_key=api_key,
        shop_id=shop_id,
        timeout=timeout,
        read_retries=max(read_retries, 0),
        stock_cache_path=Path(os.getenv("STOCK_CACHE_PATH", "variantsData.json")),
        undo_ledger_path=Path(os.getenv("UNDO_LEDGER_PATH", "replaceHistory.json")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def build_store(settings: Settings) -> HttpDeliverableStore:
    return HttpDeliverableStore(
        base_url=settings.api_url,
        api_key=settings.api_key,
        shop_id=settings.shop_id,
        timeout=settings.timeout,
        read_retries=settings.read_retries,
    )


__all__ = ["Settings", "build_store", "load_settings"]
