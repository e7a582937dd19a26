"""
Consolidation of warehouse-scoped inventory rows into logical products.
"""

from typing import Iterable

from grafibot.core.catalog.models import ACTIVE_STATUS, ConsolidatedProduct, RawProduct


def filter_active(rows: Iterable[RawProduct]) -> list[RawProduct]:
    """Keep rows with at least one unit in stock and active status."""
    return [r for r in rows if r.stock >= 1 and r.status == ACTIVE_STATUS]


def consolidate_products(rows: Iterable[RawProduct]) -> list[ConsolidatedProduct]:
    """
    Merge rows sharing a product code into one product.

    Rows are sorted by warehouse (then product id) before grouping, so the
    row that seeds id, name and price is the one from the lowest warehouse
    identifier regardless of API ordering.

    Args:
        rows: Raw inventory rows, any order

    Returns:
        Consolidated products in seeding order
    """
    ordered = sorted(filter_active(rows), key=lambda r: (r.warehouse, r.product_id))

    by_code: dict[str, ConsolidatedProduct] = {}
    for row in ordered:
        existing = by_code.get(row.code)
        if existing is None:
            by_code[row.code] = ConsolidatedProduct(
                product_id=row.product_id,
                name=row.name,
                code=row.code,
                price=row.price,
                total_stock=row.stock,
                status=row.status,
                warehouses=[row.warehouse] if row.warehouse else [],
            )
            continue

        existing.total_stock += row.stock
        if row.warehouse and row.warehouse not in existing.warehouses:
            existing.warehouses.append(row.warehouse)

    return list(by_code.values())
