"""
WhatsApp webhook handlers.
"""

import logging
from typing import Any

import httpx
from fastapi import APIRouter, BackgroundTasks, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from grafibot.bot.bot import WhatsAppClient
from grafibot.config import settings
from grafibot.core.graph.responses import FileReply, Reply
from grafibot.core.graph.service import ConversationService
from grafibot.core.search.ranking import tokenize

logger = logging.getLogger(__name__)

router = APIRouter()

# Commands are compared on normalized tokens
HELP_COMMANDS = {"ayuda", "como funcionas"}
RESET_COMMANDS = {"reiniciar"}
HELP_PROMPT = "Explícame cómo funcionas"


class OutboundMessage(BaseModel):
    number: str
    message: str


def _command_key(text: str) -> str:
    return " ".join(tokenize(text))


def extract_text_messages(payload: dict[str, Any]) -> list[tuple[str, str]]:
    """
    Pull (sender, text) pairs out of a Cloud API webhook payload.

    Non-text messages and status updates are ignored.
    """
    found = []
    for entry in payload.get("entry") or []:
        for change in entry.get("changes") or []:
            value = change.get("value") or {}
            for message in value.get("messages") or []:
                if message.get("type") != "text":
                    logger.info(f"Ignoring {message.get('type')} message from {message.get('from')}")
                    continue
                sender = message.get("from")
                body = (message.get("text") or {}).get("body", "")
                if sender and body.strip():
                    found.append((sender, body))
    return found


async def handle_message(service: ConversationService, number: str, text: str) -> Reply:
    """Route commands, everything else goes to the agent."""
    key = _command_key(text)

    if key in RESET_COMMANDS:
        return await service.reset(number)
    if key in HELP_COMMANDS:
        return await service.handle_turn(number, HELP_PROMPT)
    return await service.handle_turn(number, text)


async def deliver(client: WhatsAppClient, number: str, reply: Reply) -> None:
    """Send a reply; delivery failures are logged."""
    try:
        if isinstance(reply, FileReply):
            await client.send_document(number, reply.path, caption=reply.message)
            # Sent quotes are not kept on disk
            reply.path.unlink(missing_ok=True)
        else:
            await client.send_text(number, reply)
    except (httpx.HTTPError, RuntimeError, OSError) as e:
        logger.error(f"Failed to deliver reply to {number}: {e}", exc_info=True)


async def process_message(
    service: ConversationService,
    client: WhatsAppClient,
    number: str,
    text: str,
) -> None:
    """Handle one inbound message and send the reply."""
    logger.info(f"Message from {number}: {text[:50]}")
    reply = await handle_message(service, number, text)
    await deliver(client, number, reply)


@router.get("/webhook")
async def verify_webhook(
    mode: str = Query(default="", alias="hub.mode"),
    token: str = Query(default="", alias="hub.verify_token"),
    challenge: str = Query(default="", alias="hub.challenge"),
):
    """Meta webhook verification handshake."""
    if mode == "subscribe" and token == settings.whatsapp_verify_token:
        logger.info("Webhook verified")
        return PlainTextResponse(challenge)
    logger.warning("Webhook verification failed")
    raise HTTPException(status_code=403, detail="Verification failed")


@router.post("/webhook")
async def receive_webhook(request: Request, background_tasks: BackgroundTasks):
    """Acknowledge at once and process messages in the background."""
    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON")

    state = request.app.state
    for number, text in extract_text_messages(payload):
        background_tasks.add_task(
            process_message,
            state.conversation_service,
            state.whatsapp_client,
            number,
            text,
        )
    return {"status": "ok"}


@router.post("/v1/messages")
async def send_message(body: OutboundMessage, request: Request):
    """Send a text message to any number."""
    client: WhatsAppClient = request.app.state.whatsapp_client
    try:
        wamid = await client.send_text(body.number, body.message)
    except (httpx.HTTPError, RuntimeError) as e:
        logger.error(f"Failed to send message to {body.number}: {e}")
        raise HTTPException(status_code=502, detail="Message could not be sent")
    return {"status": "sent", "id": wamid}


@router.get("/health")
async def health(request: Request):
    """Readiness: the catalog has been loaded."""
    catalog = request.app.state.catalog
    if not catalog.is_ready:
        return PlainTextResponse("catalog not loaded", status_code=503)
    return {"status": "ok", "products": len(catalog.products())}
