#!/usr/bin/env python3
"""
Script to load the catalog from the inventory API and report consolidation stats.

Usage:
    python scripts/load_catalog.py
    python scripts/load_catalog.py --url http://localhost:4001 --no-index
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from grafibot.core.catalog.consolidation import consolidate_products, filter_active
from grafibot.core.catalog.service import CatalogService
from grafibot.core.errors import CatalogError
from grafibot.data.loaders.inventory_loader import InventoryClient


async def main(url: str | None, build_index: bool) -> None:
    """Fetch, consolidate and optionally index the inventory."""
    inventory = InventoryClient(base_url=url)

    print(f"Loading inventory from: {inventory.base_url}")
    print("-" * 50)

    try:
        rows = await inventory.fetch_products()
    except CatalogError as e:
        print(f"❌ Error: {e}")
        sys.exit(1)

    active = filter_active(rows)
    products = consolidate_products(rows)

    print(f"   Raw rows: {len(rows)}")
    print(f"   Active rows in stock: {len(active)}")
    print(f"   Consolidated products: {len(products)}")
    print(f"   Total units: {sum(p.total_stock for p in products)}")

    multi = [p for p in products if len(p.warehouses) > 1]
    print(f"   Products in several warehouses: {len(multi)}")
    for p in multi[:5]:
        print(f"     - {p.name} ({p.code}): {p.total_stock} in {', '.join(p.warehouses)}")

    if not build_index:
        return

    print("-" * 50)
    print("Building vector index (this loads the embedding model)...")
    catalog = CatalogService(inventory=inventory)
    try:
        indexed = await catalog.refresh()
        print(f"✅ Indexed {len(indexed)} products")
    finally:
        catalog.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Load the product catalog")
    parser.add_argument("--url", help="Inventory API base URL")
    parser.add_argument(
        "--no-index",
        action="store_true",
        help="Only fetch and consolidate, skip embeddings",
    )

    args = parser.parse_args()
    asyncio.run(main(args.url, not args.no_index))
