"""
Final response extraction from a finished agent turn.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from langchain_core.messages import AIMessage, BaseMessage, ToolMessage

from grafibot.core.search.outcomes import NO_RESULTS_MESSAGE, REFINEMENT_ATTRIBUTES

logger = logging.getLogger(__name__)

DEFAULT_REPLY = (
    "Parece que no pude procesar tu solicitud. ¿Podrías intentarlo de nuevo?"
)
DOCUMENT_CAPTION = "Aquí está tu cotización."


@dataclass
class FileReply:
    """Reply that carries a document to send."""
    path: Path
    message: str
    reference: Optional[str] = None


Reply = Union[str, FileReply]


def message_text(message: BaseMessage) -> str:
    """Plain text of a message, joining text blocks of structured content."""
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def _parse_payload(text: str) -> Optional[dict[str, Any]]:
    try:
        payload = json.loads(text)
    except (TypeError, ValueError):
        return None
    if isinstance(payload, dict) and "status" in payload:
        return payload
    return None


def _join_options(options: list[str]) -> str:
    if len(options) == 1:
        return options[0]
    return f"{', '.join(options[:-1])} o {options[-1]}"


def render_tool_payload(text: str) -> str:
    """
    Turn a tool payload into text for the customer.

    Non-JSON text is returned unchanged.
    """
    payload = _parse_payload(text)
    if payload is None:
        return text

    status = payload["status"]

    if status == "many_results":
        attributes = payload.get("common_attributes") or REFINEMENT_ATTRIBUTES
        return (
            f"Encontré {payload.get('count', 'varios')} productos. Para ayudarte a encontrar "
            f"lo que necesitas, ¿podrías especificar {_join_options(list(attributes))}?"
        )

    if status == "success" and "products" in payload:
        lines = [
            f"- {p.get('Producto')} (ID: {p.get('ID_Producto')}) - ${float(p.get('Precio_Venta', 0)):,.2f}"
            for p in payload["products"]
        ]
        return (
            "¡Claro! Encontré esto para ti:\n"
            + "\n".join(lines)
            + "\n\n¿Deseas agregar alguno a tu cotización? Indícame el ID y la cantidad."
        )

    if status == "no_results":
        return NO_RESULTS_MESSAGE

    if "summary" in payload:
        return payload["summary"]
    if "message" in payload:
        return payload["message"]
    return text


def _file_payload(messages: list[BaseMessage]) -> Optional[dict[str, Any]]:
    for message in reversed(messages):
        if isinstance(message, ToolMessage):
            payload = _parse_payload(message_text(message))
            if payload and payload["status"] == "file":
                return payload
    return None


def _final_ai_text(messages: list[BaseMessage]) -> Optional[str]:
    for message in reversed(messages):
        if isinstance(message, AIMessage) and not message.tool_calls:
            text = message_text(message).strip()
            if text:
                return text
    return None


def extract_final_response(messages: list[BaseMessage]) -> Reply:
    """
    Pick the reply for a turn from the messages it produced.

    Preference order: a generated document, the last final model text,
    the last tool result rendered as text, a default reply.

    Args:
        messages: Messages produced during the turn

    Returns:
        Reply text, or FileReply when a document was generated
    """
    ai_text = _final_ai_text(messages)
    text = render_tool_payload(ai_text) if ai_text else None

    if text is None:
        for message in reversed(messages):
            if isinstance(message, ToolMessage):
                text = render_tool_payload(message_text(message))
                logger.debug(f"No final model text, using {message.name} result")
                break

    file_payload = _file_payload(messages)
    if file_payload is not None:
        return FileReply(
            path=Path(file_payload["path"]),
            message=text or file_payload.get("message") or DOCUMENT_CAPTION,
            reference=file_payload.get("reference"),
        )

    return text or DEFAULT_REPLY
