"""
Domain: Removal records for the undo ledger.

One RemovalRecord captures exactly what a single Replace took from the front of
a variant's pool, in removal order. Unreplace puts `removed_items` back at the
front of the then-current pool, so Replace(n) followed by Unreplace(1) restores
the pool byte-for-byte.

Records are immutable and compared by value; the ledger removes them by value.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Mapping, Tuple

from .time import parse_utc_datetime, require_utc_timestamp, to_iso_utc

# Legacy ledger files omit variant fields for single-variant products.
DEFAULT_VARIANT_ID = "0"
DEFAULT_VARIANT_NAME = "Unknown"


@dataclass(frozen=True, slots=True)
class RemovalRecord:
    product_id: str
    product_name: str
    variant_id: str
    variant_name: str
    removed_items: Tuple[str, ...]
    timestamp: datetime

    def __post_init__(self) -> None:
        require_utc_timestamp("timestamp", self.timestamp)

    @property
    def key(self) -> Tuple[str, str]:
        return (self.product_id, self.variant_id)

    @property
    def item_count(self) -> int:
        return len(self.removed_items)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": to_iso_utc(self.timestamp, name="timestamp"),
            "productId": self.product_id,
            "productName": self.product_name,
            "variantId": self.variant_id,
            "variantName": self.variant_name,
            "removedItems": list(self.removed_items),
            "action": "removed",
        }

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "RemovalRecord":
        variant_id = data.get("variantId")
        return RemovalRecord(
            product_id=str(data["productId"]),
            product_name=str(data.get("productName") or ""),
            variant_id=str(variant_id) if variant_id is not None else DEFAULT_VARIANT_ID,
            variant_name=str(data.get("variantName") or DEFAULT_VARIANT_NAME),
            removed_items=tuple(str(item) for item in data.get("removedItems") or ()),
            timestamp=parse_utc_datetime(data["timestamp"]),
        )
