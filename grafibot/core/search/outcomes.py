"""
Search outcomes exchanged with the agent.

The `status` values and keys of `to_payload()` are what the system prompt
branches on; keep them stable.
"""

from dataclasses import dataclass, field
from typing import Union

from grafibot.core.catalog.models import ConsolidatedProduct

REFINEMENT_ATTRIBUTES = ["tipo", "tamaño", "marca", "acabado"]

NO_RESULTS_MESSAGE = (
    "No encontré productos con esa descripción. "
    "Intenta con otras palabras o con el código del producto."
)
SEARCH_UNAVAILABLE_MESSAGE = (
    "La búsqueda de productos no está disponible temporalmente. "
    "Por favor intenta de nuevo en unos minutos."
)


@dataclass
class ManyResults:
    count: int
    attributes_to_refine: list[str] = field(
        default_factory=lambda: list(REFINEMENT_ATTRIBUTES)
    )
    status = "many_results"

    def to_payload(self) -> dict:
        return {
            "status": self.status,
            "count": self.count,
            "common_attributes": list(self.attributes_to_refine),
        }


@dataclass
class SearchSuccess:
    products: list[ConsolidatedProduct]
    status = "success"

    def to_payload(self) -> dict:
        return {
            "status": self.status,
            "count": len(self.products),
            "products": [p.to_payload() for p in self.products],
        }


@dataclass
class NoResults:
    message: str = NO_RESULTS_MESSAGE
    status = "no_results"

    def to_payload(self) -> dict:
        return {"status": self.status, "message": self.message}


@dataclass
class SearchError:
    """Search could not run; distinct from an empty result."""
    message: str = SEARCH_UNAVAILABLE_MESSAGE
    status = "error"

    def to_payload(self) -> dict:
        return {"status": self.status, "message": self.message}


SearchOutcome = Union[ManyResults, SearchSuccess, NoResults, SearchError]
