"""
WhatsApp Cloud API client initialization and configuration.
"""

import logging
import mimetypes
from pathlib import Path
from typing import Any, Optional

import httpx

from grafibot.config import settings

logger = logging.getLogger(__name__)

XLSX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class WhatsAppClient:
    """Outbound messages through the Meta Graph API."""

    def __init__(
        self,
        access_token: Optional[str] = None,
        phone_number_id: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 25.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.access_token = access_token or settings.whatsapp_access_token
        self.phone_number_id = phone_number_id or settings.whatsapp_phone_number_id
        self.base_url = (base_url or settings.whatsapp_api_base_url).rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.access_token and self.phone_number_id)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"Authorization": f"Bearer {self.access_token}"},
            transport=self._transport,
        )

    async def _send_message(self, payload: dict[str, Any]) -> Optional[str]:
        if not self.is_configured:
            raise RuntimeError(
                "WhatsApp credentials not provided. "
                "Set WHATSAPP_ACCESS_TOKEN and WHATSAPP_PHONE_NUMBER_ID in .env file."
            )

        async with self._client() as client:
            response = await client.post(
                f"/{self.phone_number_id}/messages",
                json={"messaging_product": "whatsapp", **payload},
            )
        response.raise_for_status()

        messages = response.json().get("messages") or [{}]
        return messages[0].get("id")

    async def send_text(self, to: str, text: str) -> Optional[str]:
        """
        Send a text message.

        Args:
            to: Recipient WhatsApp number
            text: Message body

        Returns:
            WhatsApp message id, if the API returned one
        """
        wamid = await self._send_message({
            "to": to,
            "type": "text",
            "text": {"preview_url": False, "body": text},
        })
        logger.info(f"Text message sent to {to} (wamid={wamid})")
        return wamid

    async def upload_media(self, path: Path) -> str:
        """Upload a file and return its media id."""
        mime_type = (
            XLSX_MIME_TYPE
            if path.suffix == ".xlsx"
            else mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        )

        async with self._client() as client:
            with open(path, "rb") as f:
                response = await client.post(
                    f"/{self.phone_number_id}/media",
                    data={"messaging_product": "whatsapp", "type": mime_type},
                    files={"file": (path.name, f, mime_type)},
                )
        response.raise_for_status()
        return response.json()["id"]

    async def send_document(self, to: str, path: Path, caption: Optional[str] = None) -> Optional[str]:
        """
        Upload a document and send it to the recipient.

        Args:
            to: Recipient WhatsApp number
            path: Local file to send
            caption: Optional text shown with the document

        Returns:
            WhatsApp message id, if the API returned one
        """
        media_id = await self.upload_media(path)

        document: dict[str, Any] = {"id": media_id, "filename": path.name}
        if caption:
            document["caption"] = caption

        wamid = await self._send_message({
            "to": to,
            "type": "document",
            "document": document,
        })
        logger.info(f"Document {path.name} sent to {to} (wamid={wamid})")
        return wamid


# Global instance
whatsapp_client: WhatsAppClient | None = None


def get_whatsapp_client() -> WhatsAppClient:
    """Get or create WhatsApp client instance."""
    global whatsapp_client
    if whatsapp_client is None:
        whatsapp_client = WhatsAppClient()
    return whatsapp_client
