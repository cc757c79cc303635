"""
Check stock drift - cached stock vs the live remote pool.

Exits with status 1 when any checked variant drifts.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from repositories.deliverable_store import RemoteStoreError
from services.ledger_service import DriftReport, get_ledger_service


def print_reports(reports: List[DriftReport]) -> None:
    print("=" * 60)
    print("STOCK DRIFT")
    print("=" * 60)
    print(f"{'Product/Variant':<28}{'Cached':>10}{'Real':>10}  Status")
    print("-" * 60)
    for report in reports:
        cached = "unsynced" if report.cached is None else str(report.cached)
        status = "OK" if report.match else "MISMATCH"
        print(f"{report.product_id + '/' + report.variant_id:<28}{cached:>10}{report.real:>10}  {status}")
    print("=" * 60)

    drifted = [r for r in reports if not r.match]
    print(f"Checked: {len(reports)}    Drifted: {len(drifted)}")


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Compare the stock cache against live remote pools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Check every cached variant
  python check_stock_drift.py

  # Check one variant
  python check_stock_drift.py --product 1204 --variant 88
        """
    )
    parser.add_argument("--product", "-p", help="Product id to check")
    parser.add_argument("--variant", "-v", help="Variant id to check (requires --product)")
    args = parser.parse_args()

    if args.variant and not args.product:
        parser.error("--variant requires --product")

    logging.basicConfig(level=logging.WARNING)
    service = get_ledger_service()

    try:
        if args.product and args.variant:
            reports = [service.check_drift(args.product, args.variant)]
        elif args.product:
            product = service.cache.get(args.product)
            if product is None:
                print(f"Product {args.product} is not in the stock cache. Run sync_stock_cache.py first.")
                return 1
            reports = [service.check_drift(product.id, vid) for vid in product.variants]
        else:
            reports = service.check_all_drift()
    except RemoteStoreError as e:
        print(f"Could not fetch real stock: {e}")
        return 2

    if not reports:
        print("No cached variants to check. Run sync_stock_cache.py first.")
        return 0

    print_reports(reports)
    return 0 if all(r.match for r in reports) else 1


if __name__ == "__main__":
    sys.exit(main())
