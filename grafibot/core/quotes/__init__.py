"""
Quotes module: per-conversation cart models and document export.

The engine lives in grafibot.core.quotes.engine.
"""

from grafibot.core.quotes.exporter import QuoteExporter, make_reference
from grafibot.core.quotes.models import Quote, QuoteDocument, QuoteItem, QuoteSummary

__all__ = [
    # Models
    "Quote",
    "QuoteItem",
    "QuoteSummary",
    "QuoteDocument",
    # Exporter
    "QuoteExporter",
    "make_reference",
]
