#!/usr/bin/env python3
"""
Script to run product searches against a freshly loaded catalog.

Usage:
    python scripts/check_search.py "papel fotográfico A4"
    python scripts/check_search.py "tinta epson" "cartulina" --threshold 0.8
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from grafibot.core.catalog.service import CatalogService
from grafibot.core.search.engine import ProductSearchEngine
from grafibot.core.search.ranking import rerank


async def main(queries: list[str], threshold: float | None) -> None:
    """Load the catalog once and search each query."""
    catalog = CatalogService()
    try:
        products = await catalog.refresh()
        print(f"Catalog loaded: {len(products)} products\n")

        engine = ProductSearchEngine(catalog, similarity_threshold=threshold)

        for query in queries:
            print("=" * 50)
            print(f"QUERY: {query}")
            print("=" * 50)

            # Raw candidates with their scores, before shaping
            candidates = rerank(
                query,
                await catalog.query(query, engine.top_k),
                engine.exact_match_bonus,
                engine.keyword_bonus,
                engine.edge_token_bonus,
            )
            for c in candidates[:10]:
                print(f"  {c.similarity:.3f} -> {c.score:.3f}  {c.product.name} (ID: {c.product.product_id})")

            outcome = await engine.search(query)
            print("-" * 30)
            print(json.dumps(outcome.to_payload(), ensure_ascii=False, indent=2))
            print()
    finally:
        catalog.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Check product search results")
    parser.add_argument("queries", nargs="+", help="Search queries")
    parser.add_argument("--threshold", type=float, help="Override similarity threshold")

    args = parser.parse_args()
    asyncio.run(main(args.queries, args.threshold))
