"""
Product search: retrieval, ranking and result shaping.
"""

from grafibot.core.search.engine import ProductSearchEngine
from grafibot.core.search.outcomes import (
    ManyResults,
    NoResults,
    SearchError,
    SearchOutcome,
    SearchSuccess,
)

__all__ = [
    "ProductSearchEngine",
    "ManyResults",
    "NoResults",
    "SearchError",
    "SearchOutcome",
    "SearchSuccess",
]
