"""
Stock API Endpoints.

Endpoints for reading the local stock cache and rebuilding it from the remote
catalog. Reads are served from the cache only and may be stale.
"""

from fastapi import APIRouter, Depends, HTTPException

from api.models import ProductStockResponse, StockListResponse, SyncResponse, VariantStockResponse
from domain.catalog import Product
from repositories.deliverable_store import RemoteStoreError
from repositories.stock_cache import CachePersistFailure
from services.ledger_service import DeliverableLedgerService, get_ledger_service

router = APIRouter()


def _product_response(product: Product) -> ProductStockResponse:
    return ProductStockResponse(
        product_id=product.id,
        product_name=product.name,
        variants=[
            VariantStockResponse(id=v.id, name=v.name, stock=v.stock)
            for v in product.variants.values()
        ],
        total_stock=product.total_stock,
    )


@router.get(
    "/stock",
    response_model=StockListResponse,
    summary="List Cached Stock",
    description="Every product and variant in the stock cache with its last synced count."
)
def list_stock(service: DeliverableLedgerService = Depends(get_ledger_service)):
    products = [_product_response(p) for p in service.cache.list_products()]
    return StockListResponse(products=products, total_count=len(products))


@router.get(
    "/stock/{product_id}",
    response_model=ProductStockResponse,
    summary="Get Cached Product Stock",
)
def get_product_stock(product_id: str, service: DeliverableLedgerService = Depends(get_ledger_service)):
    """
    Cached stock for one product.

    A 404 means the product has not been synced, not that it does not exist.
    """
    product = service.cache.get(product_id)
    if product is None:
        raise HTTPException(status_code=404, detail=f"Product {product_id} is not in the stock cache")
    return _product_response(product)


@router.post(
    "/stock/sync",
    response_model=SyncResponse,
    summary="Sync Stock Cache",
    description="Rebuild the stock cache from the remote catalog and live pool sizes."
)
def sync_stock(service: DeliverableLedgerService = Depends(get_ledger_service)):
    try:
        summary = service.sync_catalog()
    except RemoteStoreError as e:
        raise HTTPException(status_code=502, detail=f"Failed to list remote catalog: {e}")
    except CachePersistFailure as e:
        raise HTTPException(status_code=500, detail=str(e))

    return SyncResponse(
        product_count=summary.product_count,
        variant_count=summary.variant_count,
        total_stock=summary.total_stock,
        failed=[f"{pid}/{vid}" for pid, vid in summary.failed],
    )
