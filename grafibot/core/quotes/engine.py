"""
Quote engine - per-conversation cart operations against the live catalog.
"""

import asyncio
import logging

from grafibot.core.catalog.service import CatalogService
from grafibot.core.errors import (
    EmptyQuote,
    InsufficientStock,
    InvalidQuantity,
    ProductNotFound,
)
from grafibot.core.locks import KeyedLock
from grafibot.core.quotes.exporter import QuoteExporter
from grafibot.core.quotes.models import Quote, QuoteDocument, QuoteItem, QuoteSummary
from grafibot.db.stores import QuoteStore

logger = logging.getLogger(__name__)


class QuoteEngine:
    """Add, summarize, clear and export quotes keyed by conversation id."""

    def __init__(
        self,
        catalog: CatalogService,
        store: QuoteStore,
        exporter: QuoteExporter | None = None,
        locks: KeyedLock | None = None,
    ):
        self.catalog = catalog
        self.store = store
        self.exporter = exporter or QuoteExporter()
        self.locks = locks if locks is not None else KeyedLock()

    async def add_item(
        self,
        conversation_id: str,
        product_id: int,
        quantity: int,
    ) -> QuoteItem:
        """
        Add a product to the conversation's quote.

        Adding a product already in the quote increases that line's quantity.
        The combined quantity is checked against the product's live stock.

        Returns:
            The resulting quote line

        Raises:
            InvalidQuantity: quantity is not a positive integer
            ProductNotFound: product id not in the current catalog
            InsufficientStock: not enough units in stock
        """
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidQuantity(
                f"La cantidad debe ser un número entero positivo (recibí {quantity!r})."
            )

        async with self.locks.hold(conversation_id):
            product = self.catalog.get_product(product_id)
            if product is None:
                raise ProductNotFound(
                    f"No encontré el producto con ID {product_id}. "
                    "Verifica el ID en los resultados de búsqueda."
                )

            quote = await self.store.get(conversation_id) or Quote(conversation_id)
            existing = quote.find(product_id)
            already = existing.quantity if existing else 0

            if already + quantity > product.total_stock:
                raise InsufficientStock(
                    f"Solo hay {product.total_stock} unidades de \"{product.name}\" "
                    f"disponibles y pediste {already + quantity} en total."
                )

            line = quote.add(
                QuoteItem(
                    product_id=product.product_id,
                    name=product.name,
                    unit_price=product.price,
                    quantity=quantity,
                )
            )
            await self.store.put(quote)

        logger.info(
            f"Quote {conversation_id}: +{quantity} x {product_id} (line now {line.quantity})"
        )
        return line

    async def get_summary(self, conversation_id: str) -> QuoteSummary:
        """Lines and total; an unknown conversation yields an empty summary."""
        quote = await self.store.get(conversation_id)
        if quote is None:
            return QuoteSummary(items=[], total=0.0)
        return QuoteSummary(items=list(quote.items), total=quote.total)

    async def clear(self, conversation_id: str) -> None:
        """Empty the quote. Safe to call repeatedly."""
        async with self.locks.hold(conversation_id):
            await self.store.delete(conversation_id)
        logger.info(f"Quote {conversation_id} cleared")

    async def generate_document(self, conversation_id: str) -> QuoteDocument:
        """
        Export the current quote.

        Raises:
            EmptyQuote: the quote has no lines
        """
        async with self.locks.hold(conversation_id):
            quote = await self.store.get(conversation_id)
            if quote is None or quote.is_empty:
                raise EmptyQuote(
                    "Tu cotización está vacía. Agrega productos antes de generar el documento."
                )
            document = await asyncio.to_thread(self.exporter.export, quote)

        logger.info(f"Quote {conversation_id} exported as {document.reference}")
        return document
