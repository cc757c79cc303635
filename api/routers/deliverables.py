"""
Deliverables API Endpoints.

Endpoints for consuming items from a variant's pool (replace), undoing recent
consumptions (unreplace), and checking the stock cache against the live pool.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from api.models import (
    DriftResponse,
    RefreshResponse,
    ReplaceRequest,
    ReplaceResponse,
    RestoredSummaryResponse,
    UnreplaceRequest,
    UnreplaceResponse,
)
from repositories.deliverable_store import RemoteStoreError
from repositories.stock_cache import CachePersistFailure
from services.ledger_service import (
    DeliverableLedgerService,
    InsufficientHistoryError,
    InsufficientStockError,
    ReplaceIncompleteError,
    RestoredSummary,
    UnreplaceIncompleteError,
    VariantNotSyncedError,
    get_ledger_service,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _summary_response(summary: RestoredSummary) -> RestoredSummaryResponse:
    return RestoredSummaryResponse(
        product_id=summary.product_id,
        product_name=summary.product_name,
        variant_id=summary.variant_id,
        variant_name=summary.variant_name,
        restored_count=summary.restored_count,
        new_stock=summary.new_stock,
        cache_updated=summary.cache_updated,
    )


@router.post(
    "/products/{product_id}/variants/{variant_id}/replace",
    response_model=ReplaceResponse,
    summary="Replace Items",
    description="Take items from the front of a variant's pool and record them for undo."
)
def replace_items(
    product_id: str,
    variant_id: str,
    request: ReplaceRequest,
    service: DeliverableLedgerService = Depends(get_ledger_service),
):
    """
    Consume `count` items from a variant's pool.

    **Errors:**
    - 404: variant not in the stock cache (sync first)
    - 409: the live pool holds fewer items than requested
    - 502: the remote store rejected the read or the overwrite (nothing changed)
    - 400: the request was rejected before anything changed
    - 500: the pool changed but the undo record could not be saved; the removed
      items are returned in the error detail
    """
    try:
        result = service.replace(product_id, variant_id, request.count)
    except VariantNotSyncedError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InsufficientStockError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except RemoteStoreError as e:
        raise HTTPException(status_code=502, detail=f"Remote store error: {e}")
    except ReplaceIncompleteError as e:
        raise HTTPException(
            status_code=500,
            detail={
                "error": str(e),
                "removed_items": e.removed_items,
                "new_stock": e.new_stock,
            },
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return ReplaceResponse(
        product_id=result.product_id,
        product_name=result.product_name,
        variant_id=result.variant_id,
        variant_name=result.variant_name,
        removed_items=result.removed_items,
        new_stock=result.new_stock,
        cache_updated=result.cache_updated,
    )


@router.post(
    "/unreplace",
    response_model=UnreplaceResponse,
    summary="Unreplace Items",
    description="Restore the most recent removals to the front of their pools."
)
def unreplace_items(
    request: UnreplaceRequest,
    service: DeliverableLedgerService = Depends(get_ledger_service),
):
    try:
        result = service.unreplace(request.count)
    except InsufficientHistoryError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except UnreplaceIncompleteError as e:
        raise HTTPException(
            status_code=500,
            detail={
                "error": str(e),
                "restored": [_summary_response(s).model_dump() for s in e.restored],
            },
        )

    return UnreplaceResponse(
        restored=[_summary_response(s) for s in result.restored],
        total_restored=result.total_restored,
    )


@router.get(
    "/products/{product_id}/variants/{variant_id}/drift",
    response_model=DriftResponse,
    summary="Check Stock Drift",
    description="Compare the cached stock of a variant with its live pool size. Never writes."
)
def check_drift(
    product_id: str,
    variant_id: str,
    service: DeliverableLedgerService = Depends(get_ledger_service),
):
    try:
        report = service.check_drift(product_id, variant_id)
    except RemoteStoreError as e:
        raise HTTPException(status_code=502, detail=f"Could not fetch real stock: {e}")

    return DriftResponse(
        product_id=report.product_id,
        variant_id=report.variant_id,
        cached=report.cached,
        real=report.real,
        match=report.match,
    )


@router.post(
    "/products/{product_id}/variants/{variant_id}/refresh",
    response_model=RefreshResponse,
    summary="Refresh Cached Stock",
    description="Write a variant's live pool size into the stock cache."
)
def refresh_stock(
    product_id: str,
    variant_id: str,
    service: DeliverableLedgerService = Depends(get_ledger_service),
):
    try:
        stock = service.refresh_variant(product_id, variant_id)
    except VariantNotSyncedError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RemoteStoreError as e:
        raise HTTPException(status_code=502, detail=f"Could not fetch real stock: {e}")
    except CachePersistFailure as e:
        logger.error(f"Refresh of {product_id}/{variant_id} could not write the cache: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return RefreshResponse(product_id=product_id, variant_id=variant_id, stock=stock)
