"""
Tools exposed to the sales agent.

Each tool returns a string for the model: JSON payloads for catalog and
quote operations, plain Spanish text for greetings, FAQ and help. Rejected
quote operations come back as {"status": "error", ...} so the turn goes on.
The conversation id is read from the run config (configurable.thread_id).
"""

import json
import logging
import random

from langchain_core.runnables import RunnableConfig
from langchain_core.tools import BaseTool, StructuredTool
from pydantic import BaseModel, Field, ValidationError

from grafibot.config import settings
from grafibot.core.errors import CatalogError, QuoteError
from grafibot.core.faq import answer_faq
from grafibot.core.quotes.engine import QuoteEngine
from grafibot.core.search.engine import ProductSearchEngine
from grafibot.core.search.outcomes import SEARCH_UNAVAILABLE_MESSAGE

logger = logging.getLogger(__name__)

GREETINGS = [
    "¡Hola! Soy tu asistente de {store}. ¿En qué puedo ayudarte hoy?",
    "¡Saludos! ¿Cómo puedo asistirte con tus necesidades de artes gráficas?",
    "¡Bienvenido! Estoy aquí para ayudarte a encontrar productos y responder tus preguntas.",
]

CAPABILITIES_MESSAGE = """¡Hola! Soy tu asistente virtual de {store}. Puedo ayudarte con lo siguiente:
1. *Buscar productos:* dime qué necesitas (ej. "papel bond", "tinta para Epson") y te ayudaré a encontrarlo. Si hay muchos resultados, te haré preguntas para refinar la búsqueda.
2. *Gestionar tu cotización:* puedes pedirme "agrega 2 del producto 4006", "ver mi cotización" o "vaciar mi cotización".
3. *Documento de cotización:* te envío tu cotización como archivo de Excel.
4. *Preguntas frecuentes:* respondo sobre envíos, devoluciones, pagos, garantías y horarios.

Escribe "reiniciar" para empezar de nuevo. ¡Solo dime lo que necesitas!"""


class SearchProductsArgs(BaseModel):
    query: str = Field(
        description="Descripción del producto que busca el usuario (ej. 'papel fotográfico A4')."
    )


class AddToQuoteArgs(BaseModel):
    product_id: int = Field(
        description="ID_Producto exacto del producto, tal como aparece en los resultados de búsqueda."
    )
    quantity: int = Field(
        description="Cantidad de unidades a agregar. Debe ser un número entero positivo."
    )


class FaqArgs(BaseModel):
    query: str = Field(
        description="Pregunta o tema sobre el que pregunta el usuario (ej. 'costo de envío')."
    )


class NoArgs(BaseModel):
    pass


def conversation_id_from(config: RunnableConfig) -> str:
    """Extract the conversation id the turn runs under."""
    thread_id = (config or {}).get("configurable", {}).get("thread_id")
    if not thread_id:
        raise ValueError("Tool called without configurable.thread_id")
    return str(thread_id)


def _dump(payload: dict) -> str:
    return json.dumps(payload, ensure_ascii=False)


def _error(code: str, message: str) -> str:
    return _dump({"status": "error", "error": code, "message": message})


def _validation_error(error: ValidationError) -> str:
    return _error(
        "invalid_arguments",
        "Los datos recibidos no son válidos. Indica un ID de producto y una cantidad entera.",
    )


def build_tools(
    search_engine: ProductSearchEngine,
    quote_engine: QuoteEngine,
) -> list[BaseTool]:
    """
    Create the agent tools bound to the given engines.

    Args:
        search_engine: Product search engine
        quote_engine: Quote engine

    Returns:
        List of LangChain tools
    """

    async def search_products(query: str) -> str:
        outcome = await search_engine.search(query)
        logger.info(f"search_products('{query[:50]}') -> {outcome.status}")
        return _dump(outcome.to_payload())

    async def add_to_quote(product_id: int, quantity: int, config: RunnableConfig) -> str:
        conversation_id = conversation_id_from(config)
        try:
            line = await quote_engine.add_item(conversation_id, product_id, quantity)
        except QuoteError as e:
            return _error(e.code, e.message)
        except CatalogError:
            return _error("catalog_unavailable", SEARCH_UNAVAILABLE_MESSAGE)

        return _dump({
            "status": "added",
            "product_id": line.product_id,
            "name": line.name,
            "added": quantity,
            "quantity": line.quantity,
            "message": (
                f"\"{line.name}\" (ID: {line.product_id}) x{quantity} añadido a tu cotización. "
                f"Ahora llevas {line.quantity}."
            ),
        })

    async def get_quote_summary(config: RunnableConfig) -> str:
        summary = await quote_engine.get_summary(conversation_id_from(config))
        payload = summary.to_payload()
        payload["summary"] = (
            summary.format_items()
            if summary.is_empty
            else f"Aquí está tu cotización actual:\n{summary.format_items()}"
        )
        return _dump(payload)

    async def clear_quote(config: RunnableConfig) -> str:
        await quote_engine.clear(conversation_id_from(config))
        return _dump({"status": "cleared", "message": "Tu cotización ha sido vaciada."})

    async def generate_quote_document(config: RunnableConfig) -> str:
        try:
            document = await quote_engine.generate_document(conversation_id_from(config))
        except QuoteError as e:
            return _error(e.code, e.message)

        return _dump({
            "status": "file",
            "path": str(document.path),
            "reference": document.reference,
            "total": round(document.total, 2),
            "message": (
                f"Aquí está tu cotización {document.reference} "
                f"por un total de ${document.total:,.2f}."
            ),
        })

    async def handle_greeting() -> str:
        return random.choice(GREETINGS).format(store=settings.store_name)

    async def get_faq_answer(query: str) -> str:
        return answer_faq(query)

    async def explain_chatbot_capabilities() -> str:
        return CAPABILITIES_MESSAGE.format(store=settings.store_name)

    return [
        StructuredTool.from_function(
            coroutine=search_products,
            name="search_products",
            description=(
                "Busca productos en el catálogo de la tienda. Úsala SIEMPRE que el usuario "
                "pregunte por un producto. Devuelve JSON con status many_results, success, "
                "no_results o error."
            ),
            args_schema=SearchProductsArgs,
        ),
        StructuredTool.from_function(
            coroutine=add_to_quote,
            name="add_to_quote",
            description=(
                "Añade un producto a la cotización del usuario. Requiere el ID_Producto exacto "
                "y una cantidad entera positiva. Úsala solo si el usuario indicó ambos claramente."
            ),
            args_schema=AddToQuoteArgs,
            handle_validation_error=_validation_error,
        ),
        StructuredTool.from_function(
            coroutine=get_quote_summary,
            name="get_quote_summary",
            description=(
                "Muestra los productos de la cotización del usuario y el total. Útil cuando "
                "pregunta por su 'carrito' o 'cotización actual'."
            ),
            args_schema=NoArgs,
        ),
        StructuredTool.from_function(
            coroutine=clear_quote,
            name="clear_quote",
            description="Vacía la cotización del usuario para empezar una nueva.",
            args_schema=NoArgs,
        ),
        StructuredTool.from_function(
            coroutine=generate_quote_document,
            name="generate_quote_document",
            description=(
                "Genera el documento de la cotización actual (archivo Excel) para enviarlo "
                "al usuario. Úsala cuando pida su cotización en archivo o documento."
            ),
            args_schema=NoArgs,
        ),
        StructuredTool.from_function(
            coroutine=handle_greeting,
            name="handle_greeting",
            description=(
                "Responde a saludos cordiales como 'hola', 'buenos días', 'qué tal'."
            ),
            args_schema=NoArgs,
        ),
        StructuredTool.from_function(
            coroutine=get_faq_answer,
            name="get_faq_answer",
            description=(
                "Responde preguntas frecuentes sobre políticas de la empresa: envíos, "
                "devoluciones, pagos, garantías, horarios y productos defectuosos."
            ),
            args_schema=FaqArgs,
        ),
        StructuredTool.from_function(
            coroutine=explain_chatbot_capabilities,
            name="explain_chatbot_capabilities",
            description=(
                "Explica cómo funciona el asistente y qué puede hacer. Útil cuando el usuario "
                "pregunta 'cómo funcionas', 'ayuda' o 'qué puedes hacer'."
            ),
            args_schema=NoArgs,
        ),
    ]
