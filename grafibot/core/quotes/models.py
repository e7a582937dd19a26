"""
Quote (cart) models.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path


@dataclass
class QuoteItem:
    """Single line in a quote."""
    product_id: int
    name: str
    unit_price: float          # Snapshot at the time of adding
    quantity: int

    @property
    def subtotal(self) -> float:
        """Price for this line."""
        return self.unit_price * self.quantity

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "product_id": self.product_id,
            "name": self.name,
            "unit_price": self.unit_price,
            "quantity": self.quantity,
            "subtotal": self.subtotal,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "QuoteItem":
        return cls(
            product_id=int(data["product_id"]),
            name=data["name"],
            unit_price=float(data["unit_price"]),
            quantity=int(data["quantity"]),
        )


@dataclass
class Quote:
    """Per-conversation quote, unique by product id."""
    conversation_id: str
    items: list[QuoteItem] = field(default_factory=list)
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def total(self) -> float:
        """Total quote price."""
        return sum(item.subtotal for item in self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def find(self, product_id: int) -> QuoteItem | None:
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None

    def add(self, item: QuoteItem) -> QuoteItem:
        """Add a line, merging quantity into an existing line for the product."""
        existing = self.find(item.product_id)
        self.updated_at = datetime.now()
        if existing is not None:
            existing.quantity += item.quantity
            return existing
        self.items.append(item)
        return item

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "conversation_id": self.conversation_id,
            "items": [item.to_dict() for item in self.items],
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Quote":
        return cls(
            conversation_id=data["conversation_id"],
            items=[QuoteItem.from_dict(i) for i in data.get("items", [])],
            updated_at=datetime.fromisoformat(data["updated_at"]),
        )


@dataclass
class QuoteSummary:
    """Read-only view of a quote."""
    items: list[QuoteItem]
    total: float

    @property
    def is_empty(self) -> bool:
        return not self.items

    def format_items(self) -> str:
        """Format lines as text for the customer."""
        if self.is_empty:
            return "Tu cotización está vacía."
        lines = [
            f"- {item.name} (ID: {item.product_id}) x{item.quantity} = ${item.subtotal:,.2f}"
            for item in self.items
        ]
        lines.append(f"\nTotal estimado: ${self.total:,.2f}")
        return "\n".join(lines)

    def to_payload(self) -> dict:
        return {
            "status": "empty" if self.is_empty else "success",
            "items": [item.to_dict() for item in self.items],
            "total": round(self.total, 2),
        }


@dataclass
class QuoteDocument:
    """Generated quote artifact."""
    reference: str
    path: Path
    total: float
    created_at: datetime = field(default_factory=datetime.now)
