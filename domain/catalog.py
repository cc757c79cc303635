"""
Domain: Products and variants as mirrored in the local stock cache.

A Variant's `stock` is a cached count of its remote pool as of the last
successful sync. It is allowed to be stale; the remote store is authoritative.

The persisted snapshot shape is:

    {productId: {"productName", "productId", "variants": {variantId: {"id", "name", "stock"}}}}

Ids are kept as strings because the snapshot is keyed by them.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional


@dataclass(frozen=True, slots=True)
class Variant:
    id: str
    name: str
    stock: int = 0

    def __post_init__(self) -> None:
        if self.stock < 0:
            raise ValueError("stock cannot be negative")

    def with_stock(self, stock: int) -> "Variant":
        return replace(self, stock=stock)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "stock": self.stock}

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "Variant":
        return Variant(
            id=str(data["id"]),
            name=str(data.get("name") or "Unknown"),
            stock=int(data.get("stock") or 0),
        )


@dataclass(frozen=True, slots=True)
class Product:
    """
    A product with its variants, keyed by variant id.

    Updates return new instances; the cache persists whole snapshots of these.
    """

    id: str
    name: str
    variants: Mapping[str, Variant] = field(default_factory=dict)

    def get_variant(self, variant_id: str) -> Optional[Variant]:
        return self.variants.get(str(variant_id))

    def with_variant_stock(self, variant_id: str, stock: int) -> "Product":
        """
        Return a copy with one variant's stock replaced.

        Raises:
            KeyError: If the variant is not part of this product.
        """

        variant_id = str(variant_id)
        current = self.variants.get(variant_id)
        if current is None:
            raise KeyError(f"Variant {variant_id} not found on product {self.id}")
        updated: Dict[str, Variant] = dict(self.variants)
        updated[variant_id] = current.with_stock(stock)
        return Product(id=self.id, name=self.name, variants=updated)

    @property
    def total_stock(self) -> int:
        return sum(v.stock for v in self.variants.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "productName": self.name,
            "productId": self.id,
            "variants": {vid: v.to_dict() for vid, v in self.variants.items()},
        }

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "Product":
        raw_variants = data.get("variants") or {}
        variants = {str(vid): Variant.from_dict(v) for vid, v in raw_variants.items()}
        return Product(
            id=str(data["productId"]),
            name=str(data.get("productName") or "Unknown"),
            variants=variants,
        )
