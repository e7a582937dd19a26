"""
Error taxonomy for catalog, search, quote and conversation processing.
"""


class GrafibotError(Exception):
    """Base class for all bot errors."""


class CatalogError(GrafibotError):
    """Catalog could not be loaded or queried."""


class UpstreamUnavailable(CatalogError):
    """Inventory API unreachable or returned a malformed payload."""


class CatalogUnavailable(CatalogError):
    """No catalog snapshot is available to serve requests."""


class QuoteError(GrafibotError):
    """Quote operation rejected; `message` is safe to show to the customer."""

    code = "quote_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidQuantity(QuoteError):
    code = "invalid_quantity"


class ProductNotFound(QuoteError):
    code = "product_not_found"


class InsufficientStock(QuoteError):
    code = "insufficient_stock"


class EmptyQuote(QuoteError):
    code = "empty_quote"


class DecisionProcessError(GrafibotError):
    """The agent graph failed to produce a response."""
