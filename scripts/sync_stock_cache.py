"""
Rebuild the local stock cache from the remote catalog.
"""

import logging
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from services.ledger_service import get_ledger_service


def sync_stock_cache() -> int:
    logging.basicConfig(level=logging.INFO)
    summary = get_ledger_service().sync_catalog()

    print("=" * 50)
    print("STOCK CACHE SYNC")
    print("=" * 50)
    print(f"Products:            {summary.product_count}")
    print(f"Variants:            {summary.variant_count}")
    print(f"Total items:         {summary.total_stock}")
    print(f"Failed variants:     {len(summary.failed)}")
    for product_id, variant_id in summary.failed:
        print(f"  - {product_id}/{variant_id} (kept previous count)")
    print("=" * 50)

    return 1 if summary.failed else 0


if __name__ == "__main__":
    sys.exit(sync_stock_cache())
