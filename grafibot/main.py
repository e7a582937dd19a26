"""
Proveedora de Artes Gráficas WhatsApp Bot - Main entry point.
"""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from grafibot.bot.bot import get_whatsapp_client
from grafibot.bot.handlers import register_handlers
from grafibot.config import settings
from grafibot.core.catalog.service import CatalogService
from grafibot.core.graph import ConversationService, build_tools, compile_graph
from grafibot.core.locks import KeyedLock
from grafibot.core.quotes.engine import QuoteEngine
from grafibot.core.search.engine import ProductSearchEngine
from grafibot.db.redis import redis_db
from grafibot.db.stores import (
    InMemoryHistoryStore,
    InMemoryQuoteStore,
    RedisHistoryStore,
    RedisQuoteStore,
)
from grafibot.db.vector import vector_db
from grafibot.integrations.llm import get_default_chat_model


# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def create_stores():
    """Quote and history stores for the configured backend."""
    if settings.storage_backend == "redis":
        await redis_db.init()
        return RedisQuoteStore(redis_db.client), RedisHistoryStore(redis_db.client)
    return InMemoryQuoteStore(), InMemoryHistoryStore()


async def on_startup(app: FastAPI) -> None:
    """Initialize services on startup."""
    logger.info("Starting Grafibot...")

    quote_store, history_store = await create_stores()
    logger.info(f"Conversation storage initialized ({settings.storage_backend})")

    catalog = CatalogService(vector_db=vector_db)
    try:
        await catalog.refresh()
    except Exception as e:
        # Serve anyway; searches report unavailability until a refresh succeeds
        logger.error(f"Initial catalog load failed: {e}", exc_info=True)

    search_engine = ProductSearchEngine(catalog)
    quote_engine = QuoteEngine(catalog, quote_store, locks=KeyedLock())
    tools = build_tools(search_engine, quote_engine)
    graph = compile_graph(get_default_chat_model(), tools)

    app.state.catalog = catalog
    app.state.conversation_service = ConversationService(
        graph, history_store, quote_engine, turn_locks=KeyedLock()
    )
    app.state.whatsapp_client = get_whatsapp_client()
    app.state.refresh_task = asyncio.create_task(catalog.run_periodic_refresh())

    logger.info("Grafibot is ready")


async def on_shutdown(app: FastAPI) -> None:
    """Cleanup on shutdown."""
    logger.info("Shutting down Grafibot...")

    refresh_task = getattr(app.state, "refresh_task", None)
    if refresh_task is not None:
        refresh_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await refresh_task

    if settings.storage_backend == "redis":
        await redis_db.close()
    vector_db.close()

    logger.info("Cleanup complete")


@asynccontextmanager
async def lifespan(app: FastAPI):
    await on_startup(app)
    try:
        yield
    finally:
        await on_shutdown(app)


def create_app() -> FastAPI:
    """Create the web application with all handlers registered."""
    app = FastAPI(title="Grafibot", lifespan=lifespan)
    register_handlers(app)
    return app


app = create_app()


def main() -> None:
    """Run the webhook server."""
    logger.info(f"Webhook server listening on {settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
