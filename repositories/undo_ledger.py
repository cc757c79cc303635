"""
Undo ledger repository (persistence).

An ordered, append-only list of RemovalRecords, one per Replace, stored as a
JSON array. The file is reloaded before every use so edits made outside the
process are picked up, and rewritten as a whole on every mutation.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import List, Sequence

from domain.removal import RemovalRecord
from repositories.stock_cache import write_json_atomic

logger = logging.getLogger(__name__)


class LedgerPersistFailure(RuntimeError):
    """Raised when the ledger file could not be written."""


class UndoLedger:
    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self, *, for_write: bool = False) -> List[RemovalRecord]:
        """
        Read every record from disk.

        An unreadable file reads as empty, but when the records are about to be
        rewritten it raises LedgerPersistFailure instead, leaving the file as is.
        """

        if not self.path.exists():
            return []
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                rows = json.load(fh)
        except (OSError, ValueError) as e:
            if for_write:
                raise LedgerPersistFailure(
                    f"Undo ledger {self.path} is unreadable; refusing to overwrite it: {e}"
                ) from e
            logger.warning(
                f"Undo ledger {self.path} is unreadable; treating it as empty: {e}",
                extra={"ledger_path": str(self.path)},
            )
            return []
        if not isinstance(rows, list):
            if for_write:
                raise LedgerPersistFailure(f"Undo ledger {self.path} is not a list; refusing to overwrite it")
            logger.warning(f"Undo ledger {self.path} is not a list; treating it as empty")
            return []

        records: List[RemovalRecord] = []
        for index, row in enumerate(rows):
            try:
                records.append(RemovalRecord.from_dict(row))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(
                    f"Skipping malformed undo ledger entry #{index}: {e}",
                    extra={"ledger_path": str(self.path), "entry_index": index},
                )
        return records

    def _save(self, records: Sequence[RemovalRecord]) -> None:
        try:
            write_json_atomic(self.path, [record.to_dict() for record in records])
        except OSError as e:
            raise LedgerPersistFailure(f"Failed to write undo ledger {self.path}: {e}") from e

    def records(self) -> List[RemovalRecord]:
        """All records, oldest first."""

        with self._lock:
            return self._load()

    def __len__(self) -> int:
        return len(self.records())

    def append(self, record: RemovalRecord) -> None:
        """
        Raises:
            LedgerPersistFailure: If the ledger file is unreadable or could not be written.
        """

        with self._lock:
            records = self._load(for_write=True)
            records.append(record)
            self._save(records)

    def discard(self, removed: Sequence[RemovalRecord]) -> int:
        """
        Remove the given records (by value) and persist the rest.

        Records appended after `removed` was selected are kept. Returns how many
        records were actually dropped.

        Raises:
            LedgerPersistFailure: If the ledger file is unreadable or could not be written.
        """

        with self._lock:
            records = self._load(for_write=True)
            pending = list(removed)
            kept: List[RemovalRecord] = []
            # Match from the newest end so duplicates drop their most recent copy
            for record in reversed(records):
                if record in pending:
                    pending.remove(record)
                else:
                    kept.append(record)
            kept.reverse()
            self._save(kept)
            return len(records) - len(kept)


__all__ = ["LedgerPersistFailure", "UndoLedger"]
