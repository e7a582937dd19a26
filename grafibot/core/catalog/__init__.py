"""
Product catalog: inventory rows and their consolidation.
"""

from grafibot.core.catalog.consolidation import consolidate_products, filter_active
from grafibot.core.catalog.models import ConsolidatedProduct, RawProduct

__all__ = [
    "ConsolidatedProduct",
    "RawProduct",
    "consolidate_products",
    "filter_active",
]
