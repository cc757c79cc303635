"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


# ============================================================================
# Stock Models
# ============================================================================

class VariantStockResponse(BaseModel):
    """Cached stock for a single variant."""
    id: str
    name: str
    stock: int


class ProductStockResponse(BaseModel):
    """Cached stock for a product and all of its variants."""
    product_id: str
    product_name: str
    variants: List[VariantStockResponse]
    total_stock: int

    class Config:
        json_schema_extra = {
            "example": {
                "product_id": "1204",
                "product_name": "Game Pass Ultimate",
                "variants": [{"id": "88", "name": "1 Month", "stock": 42}],
                "total_stock": 42
            }
        }


class StockListResponse(BaseModel):
    """Response for listing the stock cache."""
    products: List[ProductStockResponse]
    total_count: int


class SyncResponse(BaseModel):
    """Result of rebuilding the stock cache from the remote catalog."""
    product_count: int
    variant_count: int
    total_stock: int
    failed: List[str] = Field(default_factory=list, description="product_id/variant_id pairs that could not be read")


# ============================================================================
# Replace / Unreplace Models
# ============================================================================

class ReplaceRequest(BaseModel):
    """Request to take items from the front of a variant's pool."""
    count: int = Field(..., ge=1, description="Number of items to take from stock")

    class Config:
        json_schema_extra = {"example": {"count": 2}}


class ReplaceResponse(BaseModel):
    """Items taken from the pool and the stock left behind."""
    product_id: str
    product_name: str
    variant_id: str
    variant_name: str
    removed_items: List[str]
    new_stock: int
    cache_updated: bool

    class Config:
        json_schema_extra = {
            "example": {
                "product_id": "1204",
                "product_name": "Game Pass Ultimate",
                "variant_id": "88",
                "variant_name": "1 Month",
                "removed_items": ["AAAA-BBBB-CCCC", "DDDD-EEEE-FFFF"],
                "new_stock": 40,
                "cache_updated": True
            }
        }


class UnreplaceRequest(BaseModel):
    """Request to restore the most recent removals."""
    count: int = Field(1, ge=1, description="Number of recent removals to restore")


class RestoredSummaryResponse(BaseModel):
    """One removal record put back into its pool."""
    product_id: str
    product_name: str
    variant_id: str
    variant_name: str
    restored_count: int
    new_stock: int
    cache_updated: bool


class UnreplaceResponse(BaseModel):
    """Summary of an unreplace."""
    restored: List[RestoredSummaryResponse]
    total_restored: int


# ============================================================================
# Drift Models
# ============================================================================

class DriftResponse(BaseModel):
    """Cached vs live stock for one variant."""
    product_id: str
    variant_id: str
    cached: Optional[int] = Field(None, description="Cached stock, null if the variant was never synced")
    real: int
    match: bool

    class Config:
        json_schema_extra = {
            "example": {
                "product_id": "1204",
                "variant_id": "88",
                "cached": 42,
                "real": 40,
                "match": False
            }
        }


class RefreshResponse(BaseModel):
    """Live stock written into the cache."""
    product_id: str
    variant_id: str
    stock: int
