"""
Shared fixtures: inventory API double, deterministic embedder, in-memory
Qdrant, scripted chat model.
"""

from typing import Any, Callable, Optional

import httpx
import pytest
import pytest_asyncio
from langchain_core.language_models.fake_chat_models import GenericFakeChatModel
from langchain_core.messages import AIMessage
from pydantic import Field

from grafibot.core.catalog.service import CatalogService
from grafibot.core.graph import ConversationService, build_tools, compile_graph
from grafibot.core.locks import KeyedLock
from grafibot.core.quotes.engine import QuoteEngine
from grafibot.core.quotes.exporter import QuoteExporter
from grafibot.core.search.engine import ProductSearchEngine
from grafibot.core.search.ranking import tokenize
from grafibot.data.loaders.inventory_loader import InventoryClient
from grafibot.db.stores import InMemoryHistoryStore, InMemoryQuoteStore
from grafibot.db.vector import VectorDB

INVENTORY_URL = "http://inventory.test"

# Queries in the tests are well above this; unrelated products score near zero
TEST_SIMILARITY_THRESHOLD = 0.3


def make_row(
    product_id: int,
    name: str,
    code: str | None = None,
    price: float = 100.0,
    stock: int = 10,
    status: int = 1,
    warehouse: str = "X",
) -> dict[str, Any]:
    """Inventory API row with the upstream field names."""
    return {
        "ID_Producto": product_id,
        "Producto": name,
        "Codigo_Producto": code or f"C{product_id}",
        "Precio_Venta": price,
        "Existencias": stock,
        "Estado_Producto": status,
        "Almacen": warehouse,
    }


def unrelated_rows(count: int, start_id: int = 900) -> list[dict[str, Any]]:
    """Products sharing no name words with the test queries."""
    return [
        make_row(start_id + i, f"Cartucho genérico modelo {i}", code=f"CG{i}")
        for i in range(count)
    ]


def inventory_handler(rows: list[dict[str, Any]]) -> Callable[[httpx.Request], httpx.Response]:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/inventario"
        return httpx.Response(200, json={"products": rows})

    return handler


class VocabularyEmbedder:
    """
    Deterministic bag-of-words embedder.

    Each distinct token gets its own dimension on first sight; a small
    constant component keeps every vector non-zero.
    """

    dimension = 1024

    def __init__(self):
        self.vocab: dict[str, int] = {}

    def _vector(self, text: str) -> list[float]:
        vector = [0.0] * self.dimension
        vector[0] = 0.1
        for token in sorted(set(tokenize(text))):
            index = self.vocab.setdefault(token, len(self.vocab) + 1)
            if index >= self.dimension:
                raise ValueError("Test vocabulary exhausted")
            vector[index] = 1.0
        return vector

    def encode_documents(self, texts: list[str]) -> list[list[float]]:
        return [self._vector(t) for t in texts]

    def encode_query(self, query: str) -> list[float]:
        return self._vector(query)


class ScriptedChatModel(GenericFakeChatModel):
    """Fake chat model replaying scripted replies and recording its inputs."""

    calls: list = Field(default_factory=list)

    def bind_tools(self, tools, **kwargs):
        return self

    def _generate(self, messages, stop=None, run_manager=None, **kwargs):
        self.calls.append(list(messages))
        return super()._generate(messages, stop=stop, run_manager=run_manager, **kwargs)


class FailingChatModel(ScriptedChatModel):
    """Chat model whose every call fails."""

    def _generate(self, messages, stop=None, run_manager=None, **kwargs):
        self.calls.append(list(messages))
        raise RuntimeError("LLM provider is down")


def scripted_model(*replies: AIMessage | str) -> ScriptedChatModel:
    return ScriptedChatModel(messages=iter(replies))


def tool_call(name: str, args: Optional[dict] = None, call_id: str = "call_1") -> AIMessage:
    """Model reply requesting one tool call."""
    return AIMessage(
        content="",
        tool_calls=[{"name": name, "args": args or {}, "id": call_id}],
    )


@pytest.fixture
def embedder() -> VocabularyEmbedder:
    return VocabularyEmbedder()


@pytest.fixture
def vector_db():
    db = VectorDB(location=":memory:", collection_prefix="test_products")
    yield db
    db.close()


@pytest.fixture
def make_catalog(embedder, vector_db):
    """Factory for a CatalogService over a fake inventory API."""

    def factory(
        rows: Optional[list[dict[str, Any]]] = None,
        handler: Optional[Callable[[httpx.Request], httpx.Response]] = None,
        **kwargs,
    ) -> CatalogService:
        transport = httpx.MockTransport(handler or inventory_handler(rows or []))
        kwargs.setdefault("embedding_service", embedder)
        return CatalogService(
            inventory=InventoryClient(base_url=INVENTORY_URL, transport=transport),
            vector_db=vector_db,
            **kwargs,
        )

    return factory


@pytest.fixture
def catalog_rows() -> list[dict[str, Any]]:
    return [
        make_row(101, "Papel Fotográfico A4 Brillante", code="PF-A4", price=85.5, stock=10),
        make_row(202, "Tinta Negra Epson 664", code="T664", price=150.0, stock=4),
        make_row(4006, "Vinil Adhesivo Blanco Mate", code="VAB", price=320.0, stock=1),
        *unrelated_rows(5),
    ]


@pytest_asyncio.fixture
async def catalog(make_catalog, catalog_rows) -> CatalogService:
    service = make_catalog(catalog_rows)
    await service.refresh()
    return service


@pytest.fixture
def search_engine(catalog) -> ProductSearchEngine:
    return ProductSearchEngine(catalog, similarity_threshold=TEST_SIMILARITY_THRESHOLD)


@pytest.fixture
def quote_engine(catalog, tmp_path) -> QuoteEngine:
    return QuoteEngine(
        catalog,
        InMemoryQuoteStore(),
        exporter=QuoteExporter(output_dir=tmp_path / "quotes"),
        locks=KeyedLock(),
    )


@pytest.fixture
def history_store() -> InMemoryHistoryStore:
    return InMemoryHistoryStore()


@pytest.fixture
def make_service(search_engine, quote_engine, history_store):
    """Factory for a ConversationService driven by the given chat model."""

    def factory(model, max_tool_rounds: int = 8) -> ConversationService:
        tools = build_tools(search_engine, quote_engine)
        graph = compile_graph(model, tools, max_tool_rounds=max_tool_rounds)
        return ConversationService(graph, history_store, quote_engine, turn_locks=KeyedLock())

    return factory
