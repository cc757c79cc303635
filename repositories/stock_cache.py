"""
Stock cache repository (persistence).

A local JSON mirror of (product, variant) -> stock count and names. Reads never
contact the remote store and may be stale; a missing entry means "not synced",
not "does not exist". Every mutation rewrites the whole snapshot.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from domain.catalog import Product, Variant

logger = logging.getLogger(__name__)


class CachePersistFailure(RuntimeError):
    """Raised when the cache snapshot could not be written."""


def write_json_atomic(path: Path, data: object) -> None:
    """Write JSON to a sibling temp file and rename it over `path`."""

    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=2, ensure_ascii=False)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class StockCache:
    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, Product]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                raw = json.load(fh)
            return {str(pid): Product.from_dict(row) for pid, row in raw.items()}
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(
                f"Stock cache {self.path} is unreadable; serving an empty snapshot: {e}",
                extra={"cache_path": str(self.path)},
            )
            return {}

    def _save(self, snapshot: Dict[str, Product]) -> None:
        data = {pid: product.to_dict() for pid, product in snapshot.items()}
        try:
            write_json_atomic(self.path, data)
        except OSError as e:
            raise CachePersistFailure(f"Failed to write stock cache {self.path}: {e}") from e

    def snapshot(self) -> Dict[str, Product]:
        """Return the whole cached mapping productId -> Product."""

        with self._lock:
            return self._load()

    def list_products(self) -> List[Product]:
        return list(self.snapshot().values())

    def get(self, product_id: str) -> Optional[Product]:
        return self.snapshot().get(str(product_id))

    def find_variant(self, product_id: str, variant_id: str) -> Optional[Variant]:
        product = self.get(product_id)
        if product is None:
            return None
        return product.get_variant(variant_id)

    def set_stock(self, product_id: str, variant_id: str, count: int) -> None:
        """
        Record a variant's stock after a confirmed remote mutation.

        Raises:
            KeyError: If the product/variant is not in the cache.
            CachePersistFailure: If the snapshot could not be written.
        """

        with self._lock:
            snapshot = self._load()
            product = snapshot.get(str(product_id))
            if product is None:
                raise KeyError(f"Product {product_id} is not in the stock cache")
            snapshot[product.id] = product.with_variant_stock(variant_id, count)
            self._save(snapshot)

    def replace_snapshot(self, products: Iterable[Product]) -> None:
        """
        Replace the whole cache with `products`.

        Raises:
            CachePersistFailure: If the snapshot could not be written.
        """

        with self._lock:
            self._save({product.id: product for product in products})


__all__ = ["CachePersistFailure", "StockCache", "write_json_atomic"]
