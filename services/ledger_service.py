"""
Deliverable ledger service.

Consumes items from the front of a variant's remote pool while recording what was
taken (Replace), puts the most recent removals back (Unreplace), and compares the
local stock cache against the remote pool (drift check).

Consistency model:
- The remote store is authoritative. A failed remote write aborts the operation
  before the ledger or cache is touched.
- The ledger is written after the remote write succeeds. If that fails the
  operation reports an incomplete state instead of pretending nothing happened.
- The cache is best-effort: a failed cache write is logged and leaves drift that
  `check_drift` will surface.
- Replace and each record restored by Unreplace run under the variant's lock;
  Unreplace also serializes against other Unreplace calls.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional, Sequence, Tuple

from domain.removal import RemovalRecord
from domain.time import utc_now
from repositories.client import build_store, load_settings
from repositories.deliverable_store import DeliverableStore, RemoteStoreError
from repositories.stock_cache import CachePersistFailure, StockCache
from repositories.undo_ledger import LedgerPersistFailure, UndoLedger
from services.locks import KeyedLocks

logger = logging.getLogger(__name__)


class VariantNotSyncedError(LookupError):
    """The product or variant is not present in the stock cache."""

    def __init__(self, product_id: str, variant_id: str):
        self.product_id = product_id
        self.variant_id = variant_id
        super().__init__(
            f"Variant {product_id}/{variant_id} is not in the stock cache. Run a stock sync first."
        )


class InsufficientStockError(Exception):
    """Raised when a Replace asks for more items than the live pool holds."""

    def __init__(self, product_id: str, variant_id: str, requested: int, available: int):
        self.product_id = product_id
        self.variant_id = variant_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for {product_id}/{variant_id}. "
            f"Requested: {requested}, Available: {available}"
        )


class InsufficientHistoryError(Exception):
    """Raised when an Unreplace asks for more records than the ledger holds."""

    def __init__(self, requested: int, available: int):
        self.requested = requested
        self.available = available
        super().__init__(
            f"Only {available} replacement(s) in history; cannot restore {requested}"
        )


class ReplaceIncompleteError(RuntimeError):
    """
    The remote pool was consumed but the removal record was not persisted.

    The removed items are attached so the caller can still deliver them; the
    record cannot be undone through the ledger.
    """

    def __init__(self, record: RemovalRecord, new_stock: int, cause: Exception):
        self.record = record
        self.removed_items = list(record.removed_items)
        self.new_stock = new_stock
        self.cause = cause
        super().__init__(
            f"Removed {record.item_count} item(s) from {record.product_id}/{record.variant_id} "
            f"but the undo record was not saved: {cause}"
        )


@dataclass(frozen=True, slots=True)
class ReplaceResult:
    product_id: str
    product_name: str
    variant_id: str
    variant_name: str
    removed_items: List[str]
    new_stock: int
    cache_updated: bool


@dataclass(frozen=True, slots=True)
class RestoredSummary:
    """One removal record put back into its pool."""
    product_id: str
    product_name: str
    variant_id: str
    variant_name: str
    restored_count: int
    new_stock: int
    cache_updated: bool


@dataclass(frozen=True, slots=True)
class UnreplaceResult:
    restored: List[RestoredSummary]
    total_restored: int


class UnreplaceIncompleteError(RuntimeError):
    """
    A multi-record Unreplace stopped part-way.

    `restored` lists the records already put back (and already dropped from the
    ledger). `failed_record` is the record that could not be restored, or None if
    every pool was restored but the ledger could not be rewritten.
    """

    def __init__(
        self,
        restored: Sequence[RestoredSummary],
        failed_record: Optional[RemovalRecord],
        cause: Exception,
    ):
        self.restored = list(restored)
        self.failed_record = failed_record
        self.cause = cause
        if failed_record is None:
            detail = "the undo ledger could not be updated"
        else:
            detail = f"restoring {failed_record.product_id}/{failed_record.variant_id} failed"
        super().__init__(
            f"Unreplace incomplete after {len(self.restored)} record(s): {detail}: {cause}"
        )


@dataclass(frozen=True, slots=True)
class DriftReport:
    """
    Cached vs live stock for one variant.

    `cached` is None when the variant has never been synced.
    """
    product_id: str
    variant_id: str
    cached: Optional[int]
    real: int
    match: bool


@dataclass(frozen=True, slots=True)
class SyncSummary:
    product_count: int
    variant_count: int
    total_stock: int
    failed: List[Tuple[str, str]]


class DeliverableLedgerService:
    def __init__(
        self,
        store: DeliverableStore,
        cache: StockCache,
        ledger: UndoLedger,
        locks: Optional[KeyedLocks] = None,
    ):
        self.store = store
        self.cache = cache
        self.ledger = ledger
        self.locks = locks or KeyedLocks()
        self._unreplace_lock = threading.Lock()

    def _update_cache(self, product_id: str, variant_id: str, count: int) -> bool:
        """Best-effort cache write after a confirmed remote mutation."""

        try:
            self.cache.set_stock(product_id, variant_id, count)
        except (CachePersistFailure, KeyError) as e:
            logger.warning(
                f"Stock cache not updated for {product_id}/{variant_id}; cache now drifts from remote: {e}",
                extra={"product_id": product_id, "variant_id": variant_id, "real_stock": count},
            )
            return False
        return True

    def replace(self, product_id: str, variant_id: str, count: int) -> ReplaceResult:
        """
        Consume `count` items from the front of a variant's pool.

        Args:
            product_id: Product identifier
            variant_id: Variant identifier
            count: Number of items to take (>= 1)

        Returns:
            ReplaceResult with the removed items (in pool order) and the new stock

        Raises:
            ValueError: If count < 1
            VariantNotSyncedError: If the variant is not in the stock cache
            InsufficientStockError: If the live pool holds fewer than `count` items
            RemoteStoreError: If reading or overwriting the pool fails (nothing changed)
            ReplaceIncompleteError: If the pool changed but the ledger write failed
        """

        if count < 1:
            raise ValueError("count must be >= 1")
        product_id, variant_id = str(product_id), str(variant_id)

        with self.locks.hold(product_id, variant_id):
            product = self.cache.get(product_id)
            variant = product.get_variant(variant_id) if product is not None else None
            if product is None or variant is None:
                raise VariantNotSyncedError(product_id, variant_id)

            pool = self.store.fetch_pool(product_id, variant_id)
            if count > len(pool):
                if variant.stock != len(pool):
                    logger.warning(
                        f"Stock mismatch for {product_id}/{variant_id}: cache {variant.stock}, remote {len(pool)}",
                        extra={"product_id": product_id, "variant_id": variant_id},
                    )
                raise InsufficientStockError(product_id, variant_id, requested=count, available=len(pool))

            removed, remaining = pool[:count], pool[count:]
            self.store.overwrite(product_id, variant_id, remaining)

            record = RemovalRecord(
                product_id=product_id,
                product_name=product.name,
                variant_id=variant_id,
                variant_name=variant.name,
                removed_items=tuple(removed),
                timestamp=utc_now(),
            )
            try:
                self.ledger.append(record)
            except LedgerPersistFailure as e:
                logger.error(
                    f"Pool {product_id}/{variant_id} consumed but undo record not saved",
                    extra={"product_id": product_id, "variant_id": variant_id, "removed_count": count},
                )
                self._update_cache(product_id, variant_id, len(remaining))
                raise ReplaceIncompleteError(record, len(remaining), e) from e

            cache_updated = self._update_cache(product_id, variant_id, len(remaining))

        logger.info(f"Replaced {count} item(s) from {product_id}/{variant_id}; {len(remaining)} left")
        return ReplaceResult(
            product_id=product_id,
            product_name=product.name,
            variant_id=variant_id,
            variant_name=variant.name,
            removed_items=removed,
            new_stock=len(remaining),
            cache_updated=cache_updated,
        )

    def _restore(self, record: RemovalRecord) -> RestoredSummary:
        with self.locks.hold(record.product_id, record.variant_id):
            # An undecodable pool must not be overwritten; its items would be lost
            current = self.store.read_pool(record.product_id, record.variant_id)
            restored_pool = list(record.removed_items) + current
            self.store.overwrite(record.product_id, record.variant_id, restored_pool)
            cache_updated = self._update_cache(record.product_id, record.variant_id, len(restored_pool))

        return RestoredSummary(
            product_id=record.product_id,
            product_name=record.product_name,
            variant_id=record.variant_id,
            variant_name=record.variant_name,
            restored_count=record.item_count,
            new_stock=len(restored_pool),
            cache_updated=cache_updated,
        )

    def unreplace(self, count: int = 1) -> UnreplaceResult:
        """
        Undo the `count` most recent Replace calls.

        Records are restored most-recent first, each one put back at the front of
        its pool, so consecutive removals from the same variant come back in their
        original order. The whole call is rejected up front if the ledger holds
        fewer than `count` records.

        Returns:
            UnreplaceResult with one summary per restored record (in restore order)

        Raises:
            ValueError: If count < 1
            InsufficientHistoryError: If count exceeds the ledger length (no change)
            UnreplaceIncompleteError: If a restore or the final ledger write failed;
                records restored before the failure are removed from the ledger
        """

        if count < 1:
            raise ValueError("count must be >= 1")

        with self._unreplace_lock:
            records = self.ledger.records()
            if count > len(records):
                raise InsufficientHistoryError(requested=count, available=len(records))

            batch = records[-count:]
            restored: List[RestoredSummary] = []
            for record in reversed(batch):
                try:
                    restored.append(self._restore(record))
                except (RemoteStoreError, ValueError) as e:
                    logger.error(
                        f"Unreplace stopped at {record.product_id}/{record.variant_id} "
                        f"after {len(restored)} of {count} record(s): {e}",
                        extra={"product_id": record.product_id, "variant_id": record.variant_id},
                    )
                    applied = batch[len(batch) - len(restored):] if restored else []
                    self._discard_applied(applied, restored, failed_record=record, cause=e)
                    raise UnreplaceIncompleteError(restored, record, e) from e

            self._discard_applied(batch, restored, failed_record=None, cause=None)

        total = sum(summary.restored_count for summary in restored)
        logger.info(f"Unreplaced {count} record(s), {total} item(s) restored")
        return UnreplaceResult(restored=restored, total_restored=total)

    def _discard_applied(
        self,
        applied: Sequence[RemovalRecord],
        restored: Sequence[RestoredSummary],
        *,
        failed_record: Optional[RemovalRecord],
        cause: Optional[Exception],
    ) -> None:
        if not applied:
            return
        try:
            self.ledger.discard(applied)
        except LedgerPersistFailure as e:
            logger.error(
                f"Pools restored but {len(applied)} record(s) are still in the undo ledger",
                extra={"restored_records": len(applied)},
            )
            raise UnreplaceIncompleteError(restored, failed_record, cause or e) from e

    def check_drift(self, product_id: str, variant_id: str) -> DriftReport:
        """
        Compare the cached stock of a variant with its live pool size.

        Never writes to the cache or the ledger.

        Raises:
            RemoteReadFailure: If the live pool cannot be read.
        """

        product_id, variant_id = str(product_id), str(variant_id)
        cached_variant = self.cache.find_variant(product_id, variant_id)
        cached = cached_variant.stock if cached_variant is not None else None
        real = len(self.store.fetch_pool(product_id, variant_id))
        match = cached is not None and cached == real

        if not match:
            logger.warning(
                f"Stock drift on {product_id}/{variant_id}: cached {cached}, real {real}",
                extra={"product_id": product_id, "variant_id": variant_id, "cached": cached, "real": real},
            )
        return DriftReport(product_id=product_id, variant_id=variant_id, cached=cached, real=real, match=match)

    def check_all_drift(self) -> List[DriftReport]:
        """Drift reports for every cached variant."""

        reports: List[DriftReport] = []
        for product in self.cache.list_products():
            for variant_id in product.variants:
                reports.append(self.check_drift(product.id, variant_id))
        return reports

    def refresh_variant(self, product_id: str, variant_id: str) -> int:
        """
        Write a variant's live pool size into the cache.

        Returns:
            The live stock count now cached

        Raises:
            VariantNotSyncedError: If the variant is not in the stock cache
            RemoteReadFailure: If the live pool cannot be read
            CachePersistFailure: If the cache could not be written
        """

        product_id, variant_id = str(product_id), str(variant_id)
        with self.locks.hold(product_id, variant_id):
            if self.cache.find_variant(product_id, variant_id) is None:
                raise VariantNotSyncedError(product_id, variant_id)
            real = len(self.store.fetch_pool(product_id, variant_id))
            self.cache.set_stock(product_id, variant_id, real)
        return real

    def sync_catalog(self) -> SyncSummary:
        """
        Rebuild the stock cache from the remote catalog and live pool sizes.

        A variant whose pool cannot be read keeps its previously cached count
        (0 if it was never cached) and is reported in `failed`.

        Raises:
            RemoteReadFailure: If the catalog itself cannot be listed
            CachePersistFailure: If the cache could not be written
        """

        previous = self.cache.snapshot()
        products = self.store.list_products()
        synced = []
        failed: List[Tuple[str, str]] = []

        for product in products:
            for variant_id in list(product.variants):
                try:
                    stock = len(self.store.fetch_pool(product.id, variant_id))
                except RemoteStoreError as e:
                    logger.warning(f"Could not read pool {product.id}/{variant_id} during sync: {e}")
                    failed.append((product.id, variant_id))
                    old_product = previous.get(product.id)
                    old_variant = old_product.get_variant(variant_id) if old_product else None
                    stock = old_variant.stock if old_variant is not None else 0
                product = product.with_variant_stock(variant_id, stock)
            synced.append(product)

        self.cache.replace_snapshot(synced)
        summary = SyncSummary(
            product_count=len(synced),
            variant_count=sum(len(p.variants) for p in synced),
            total_stock=sum(p.total_stock for p in synced),
            failed=failed,
        )
        logger.info(
            f"Stock cache synced: {summary.product_count} product(s), "
            f"{summary.variant_count} variant(s), {len(failed)} failed"
        )
        return summary


@lru_cache(maxsize=1)
def get_ledger_service() -> DeliverableLedgerService:
    """Process-wide service built from environment settings."""

    settings = load_settings()
    return DeliverableLedgerService(
        store=build_store(settings),
        cache=StockCache(settings.stock_cache_path),
        ledger=UndoLedger(settings.undo_ledger_path),
    )


__all__ = [
    "DeliverableLedgerService",
    "DriftReport",
    "InsufficientHistoryError",
    "InsufficientStockError",
    "ReplaceIncompleteError",
    "ReplaceResult",
    "RestoredSummary",
    "SyncSummary",
    "UnreplaceIncompleteError",
    "UnreplaceResult",
    "VariantNotSyncedError",
    "get_ledger_service",
]
