"""
Tests for `repositories/undo_ledger.py` and `domain/removal.py`.

Covers:
- Append persists the whole ledger, oldest first.
- External edits to the file are picked up on the next read.
- Legacy entries without variant fields load with defaults.
- Malformed entries are skipped; unreadable files read as empty but are never
  overwritten.
- discard removes by value and keeps records appended later.
- RemovalRecord timestamps must be UTC.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from domain.removal import RemovalRecord
from repositories.undo_ledger import LedgerPersistFailure, UndoLedger

T0 = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def _record(items, *, minutes: int = 0, variant_id: str = "1") -> RemovalRecord:
    return RemovalRecord(
        product_id="10",
        product_name="Game Key",
        variant_id=variant_id,
        variant_name="Standard",
        removed_items=tuple(items),
        timestamp=T0 + timedelta(minutes=minutes),
    )


def test_append_and_read_back(ledger: UndoLedger) -> None:
    first = _record(["A"], minutes=0)
    second = _record(["B", "C"], minutes=1)

    ledger.append(first)
    ledger.append(second)

    assert ledger.records() == [first, second]
    assert len(ledger) == 2

    rows = json.loads(ledger.path.read_text(encoding="utf-8"))
    assert rows[1]["removedItems"] == ["B", "C"]
    assert rows[1]["productId"] == "10"
    assert rows[1]["variantId"] == "1"
    assert rows[1]["action"] == "removed"


def test_reload_picks_up_external_edits(ledger: UndoLedger) -> None:
    ledger.append(_record(["A"]))

    ledger.path.write_text("[]", encoding="utf-8")

    assert ledger.records() == []


def test_legacy_entries_default_variant_fields(ledger: UndoLedger) -> None:
    ledger.path.write_text(
        json.dumps(
            [
                {
                    "timestamp": "2025-03-01T12:00:00.000Z",
                    "productId": 10,
                    "productName": "Game Key",
                    "removedItems": ["A", "B"],
                    "action": "removed",
                }
            ]
        ),
        encoding="utf-8",
    )

    (record,) = ledger.records()
    assert record.variant_id == "0"
    assert record.variant_name == "Unknown"
    assert record.product_id == "10"
    assert record.removed_items == ("A", "B")
    assert record.timestamp == T0


def test_malformed_entries_are_skipped(ledger: UndoLedger) -> None:
    good = _record(["A"])
    ledger.path.write_text(json.dumps([{"productName": "no id"}, good.to_dict()]), encoding="utf-8")

    assert ledger.records() == [good]


def test_unreadable_file_is_empty(ledger: UndoLedger) -> None:
    ledger.path.write_text("{oops", encoding="utf-8")
    assert ledger.records() == []

    ledger.path.write_text('{"not": "a list"}', encoding="utf-8")
    assert ledger.records() == []


@pytest.mark.parametrize("contents", ['[{"productId": 10},]', '{"not": "a list"}'])
def test_writes_refuse_to_replace_an_unreadable_file(ledger: UndoLedger, contents: str) -> None:
    ledger.path.write_text(contents, encoding="utf-8")

    with pytest.raises(LedgerPersistFailure):
        ledger.append(_record(["A"]))
    with pytest.raises(LedgerPersistFailure):
        ledger.discard([_record(["A"])])

    assert ledger.path.read_text(encoding="utf-8") == contents


def test_discard_removes_by_value_and_keeps_later_appends(ledger: UndoLedger) -> None:
    first = _record(["A"], minutes=0)
    second = _record(["B"], minutes=1)
    ledger.append(first)
    ledger.append(second)

    selected = ledger.records()[-1:]
    late = _record(["C"], minutes=2)
    ledger.append(late)

    dropped = ledger.discard(selected)

    assert dropped == 1
    assert ledger.records() == [first, late]


def test_append_failure_raises_ledger_persist_failure(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    ledger = UndoLedger(blocker / "replaceHistory.json")

    with pytest.raises(LedgerPersistFailure):
        ledger.append(_record(["A"]))


def test_removal_record_requires_utc_timestamp() -> None:
    with pytest.raises(ValueError):
        RemovalRecord(
            product_id="10",
            product_name="Game Key",
            variant_id="1",
            variant_name="Standard",
            removed_items=("A",),
            timestamp=datetime(2025, 3, 1, 12, 0, 0),
        )

    with pytest.raises(ValueError):
        RemovalRecord(
            product_id="10",
            product_name="Game Key",
            variant_id="1",
            variant_name="Standard",
            removed_items=("A",),
            timestamp=datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone(timedelta(hours=2))),
        )
