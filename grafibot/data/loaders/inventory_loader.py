"""
Inventory loader - fetches raw product rows from the inventory API.
"""

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from grafibot.config import settings
from grafibot.core.catalog.models import RawProduct
from grafibot.core.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)


class InventoryClient:
    """HTTP client for the `/inventario` endpoint."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.inventory_api_url).rstrip("/")
        self.timeout = timeout or settings.inventory_timeout
        self._transport = transport

    async def fetch_products(self) -> list[RawProduct]:
        """
        Fetch every inventory row.

        Returns:
            Validated rows; rows that fail validation are skipped

        Raises:
            UpstreamUnavailable: Network error, HTTP error status or a payload
                without a `products` array
        """
        url = f"{self.base_url}/inventario"
        logger.info(f"Fetching inventory from {url}")

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"Inventory service unreachable at {url}: {e}") from e
        except ValueError as e:
            raise UpstreamUnavailable(f"Inventory service returned invalid JSON: {e}") from e

        raw_rows = data.get("products") if isinstance(data, dict) else None
        if not isinstance(raw_rows, list):
            raise UpstreamUnavailable(
                "Inventory response does not contain a 'products' array"
            )

        rows = []
        skipped = 0
        for raw in raw_rows:
            try:
                rows.append(RawProduct.model_validate(raw))
            except ValidationError as e:
                skipped += 1
                logger.warning(f"Skipping malformed inventory row {raw!r}: {e.error_count()} errors")

        logger.info(f"Inventory fetched: {len(rows)} rows ({skipped} skipped)")
        return rows
