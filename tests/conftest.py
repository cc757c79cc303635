"""
Pytest configuration and shared fixtures.

Adds the project root to the Python path so tests can import domain,
repositories, services and api, and provides an in-memory remote store plus
tmp-path backed cache and ledger.
"""

import sys
from pathlib import Path
from typing import Any, Dict, List, Set, Tuple

import pytest

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from domain.catalog import Product, Variant  # noqa: E402
from repositories.deliverable_store import (  # noqa: E402
    DeliverableStore,
    RemoteReadFailure,
    RemoteWriteFailure,
)
from repositories.stock_cache import StockCache  # noqa: E402
from repositories.undo_ledger import UndoLedger  # noqa: E402
from services.ledger_service import DeliverableLedgerService  # noqa: E402


class FakeDeliverableStore(DeliverableStore):
    """
    In-memory remote store.

    Pools are held as newline-joined strings, the way the overwrite endpoint
    stores them. `raw_overrides` serves a fixed payload for a key instead.
    """

    def __init__(self) -> None:
        self.pools: Dict[Tuple[str, str], str] = {}
        self.raw_overrides: Dict[Tuple[str, str], Any] = {}
        self.catalog: List[Product] = []
        self.fail_reads: Set[Tuple[str, str]] = set()
        self.fail_writes: Set[Tuple[str, str]] = set()
        self.write_status = 500
        self.writes: List[Tuple[str, str, str]] = []

    def set_pool(self, product_id: str, variant_id: str, items: List[str]) -> None:
        self.pools[(product_id, variant_id)] = "\n".join(items)

    def pool(self, product_id: str, variant_id: str) -> List[str]:
        text = self.pools.get((product_id, variant_id), "")
        return [line for line in text.split("\n") if line]

    def fetch_raw(self, product_id: str, variant_id: str) -> Any:
        key = (product_id, variant_id)
        if key in self.fail_reads:
            raise RemoteReadFailure("read failed", method="GET", endpoint=str(key), status_code=503)
        if key in self.raw_overrides:
            return self.raw_overrides[key]
        return {"deliverables": self.pools.get(key, "")}

    def put_deliverables(self, product_id: str, variant_id: str, deliverables: str) -> None:
        key = (product_id, variant_id)
        if key in self.fail_writes:
            raise RemoteWriteFailure(
                "write failed", method="PUT", endpoint=str(key), status_code=self.write_status
            )
        self.raw_overrides.pop(key, None)
        self.pools[key] = deliverables
        self.writes.append((product_id, variant_id, deliverables))

    def list_products(self) -> List[Product]:
        return list(self.catalog)


def make_product(product_id: str, name: str, variants: Dict[str, Tuple[str, int]]) -> Product:
    return Product(
        id=product_id,
        name=name,
        variants={vid: Variant(id=vid, name=vname, stock=stock) for vid, (vname, stock) in variants.items()},
    )


@pytest.fixture
def store() -> FakeDeliverableStore:
    return FakeDeliverableStore()


@pytest.fixture
def cache(tmp_path: Path) -> StockCache:
    return StockCache(tmp_path / "variantsData.json")


@pytest.fixture
def ledger(tmp_path: Path) -> UndoLedger:
    return UndoLedger(tmp_path / "replaceHistory.json")


@pytest.fixture
def service(store: FakeDeliverableStore, cache: StockCache, ledger: UndoLedger) -> DeliverableLedgerService:
    return DeliverableLedgerService(store=store, cache=cache, ledger=ledger)


@pytest.fixture
def seeded(store: FakeDeliverableStore, cache: StockCache) -> Product:
    """Product 10 / variant 1 holding A, B, C, D, synced into the cache."""

    store.set_pool("10", "1", ["A", "B", "C", "D"])
    product = make_product("10", "Game Key", {"1": ("Standard", 4), "2": ("Deluxe", 0)})
    cache.replace_snapshot([product])
    return product
