"""
Catalog service - keeps the consolidated product set and its vector index.

Readers always see one complete snapshot: a refresh builds the new product
map and index off to the side and publishes them with a single assignment.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from grafibot.config import settings
from grafibot.core.catalog.consolidation import consolidate_products
from grafibot.core.catalog.models import ConsolidatedProduct
from grafibot.core.errors import CatalogUnavailable
from grafibot.data.loaders.inventory_loader import InventoryClient
from grafibot.db.vector import ProductIndex, VectorDB

logger = logging.getLogger(__name__)

# Minimum delay before retrying a failed refresh from the query path
RETRY_DELAY_SECONDS = 60


@dataclass
class CatalogSnapshot:
    """Products and index published together."""
    products: dict[int, ConsolidatedProduct]
    index: ProductIndex
    loaded_at: float = field(default_factory=time.monotonic)
    # In-flight queries; a retired index is dropped once this reaches zero
    readers: int = 0
    retired: bool = False


class CatalogService:
    """Loads, consolidates and indexes the inventory."""

    def __init__(
        self,
        inventory: InventoryClient | None = None,
        embedding_service=None,
        vector_db: VectorDB | None = None,
        refresh_interval: int | None = None,
        embedding_timeout: float | None = None,
    ):
        self.inventory = inventory or InventoryClient()
        self._embedding_service = embedding_service
        self.vector_db = vector_db or VectorDB()
        self.refresh_interval = refresh_interval or settings.catalog_refresh_interval
        self.embedding_timeout = embedding_timeout or settings.embedding_timeout

        self._snapshot: Optional[CatalogSnapshot] = None
        self._refresh_lock = asyncio.Lock()
        self._next_attempt_at = 0.0

    @property
    def embedding_service(self):
        """Lazy default embedding service."""
        if self._embedding_service is None:
            from grafibot.data.embeddings import get_embedding_service

            self._embedding_service = get_embedding_service()
        return self._embedding_service

    @property
    def is_ready(self) -> bool:
        """True once a catalog has been loaded."""
        return self._snapshot is not None

    @property
    def snapshot(self) -> Optional[CatalogSnapshot]:
        return self._snapshot

    def products(self) -> list[ConsolidatedProduct]:
        """All products of the current snapshot."""
        snapshot = self._require_snapshot()
        return list(snapshot.products.values())

    def get_product(self, product_id: int) -> Optional[ConsolidatedProduct]:
        """Look up a product in the live snapshot."""
        return self._require_snapshot().products.get(product_id)

    async def refresh(self) -> list[ConsolidatedProduct]:
        """
        Rebuild products and index from the inventory API.

        On failure the previous snapshot keeps serving and the error is
        re-raised.
        """
        async with self._refresh_lock:
            return await self._do_refresh()

    async def ensure_fresh(self) -> CatalogSnapshot:
        """
        Return a snapshot, refreshing it first when missing or expired.

        A failed refresh falls back to the stale snapshot if one exists, and
        while another refresh is running the stale snapshot is returned
        without waiting for it.

        Raises:
            CatalogUnavailable: No snapshot could be loaded
        """
        snapshot = self._snapshot
        if snapshot is not None and not self._is_stale(snapshot):
            return snapshot
        if snapshot is not None and self._refresh_lock.locked():
            return snapshot

        async with self._refresh_lock:
            snapshot = self._snapshot
            if snapshot is not None and not self._is_stale(snapshot):
                return snapshot
            if time.monotonic() < self._next_attempt_at:
                return self._require_snapshot()

            try:
                await self._do_refresh()
            except Exception as e:
                self._next_attempt_at = time.monotonic() + min(
                    RETRY_DELAY_SECONDS, self.refresh_interval
                )
                if snapshot is None:
                    raise CatalogUnavailable(f"Catalog could not be loaded: {e}") from e
                logger.warning(f"Catalog refresh failed, serving stale snapshot: {e}")
                return snapshot

            return self._snapshot

    async def query(
        self,
        text: str,
        limit: int | None = None,
    ) -> list[tuple[ConsolidatedProduct, float]]:
        """Similarity query against the current snapshot."""
        await self.ensure_fresh()
        snapshot = self._checkout()
        try:
            vector = await asyncio.wait_for(
                asyncio.to_thread(self.embedding_service.encode_query, text),
                timeout=self.embedding_timeout,
            )
            return snapshot.index.query(vector, limit)
        except asyncio.TimeoutError as e:
            raise CatalogUnavailable("Query embedding timed out") from e
        except Exception as e:
            raise CatalogUnavailable(f"Similarity query failed: {e}") from e
        finally:
            self._release(snapshot)

    async def run_periodic_refresh(self) -> None:
        """Refresh forever every `refresh_interval` seconds."""
        while True:
            await asyncio.sleep(self.refresh_interval)
            try:
                await self.refresh()
            except Exception as e:
                logger.error(f"Periodic catalog refresh failed: {e}", exc_info=True)

    def close(self) -> None:
        """Release the vector DB client."""
        self.vector_db.close()

    async def _do_refresh(self) -> list[ConsolidatedProduct]:
        logger.info("Refreshing product catalog...")

        rows = await self.inventory.fetch_products()
        products = consolidate_products(rows)

        if products:
            vectors = await asyncio.wait_for(
                asyncio.to_thread(
                    self.embedding_service.encode_documents,
                    [p.search_text() for p in products],
                ),
                timeout=self.embedding_timeout,
            )
        else:
            logger.warning("No active products in stock, catalog will be empty")
            vectors = []

        index = self.vector_db.build_index(products, vectors)

        previous = self._snapshot
        self._snapshot = CatalogSnapshot(
            products={p.product_id: p for p in products},
            index=index,
        )

        if previous is not None:
            previous.retired = True
            if previous.readers == 0:
                previous.index.drop()

        logger.info(
            f"Catalog refreshed: {len(rows)} rows consolidated into {len(products)} products"
        )
        return products

    def _require_snapshot(self) -> CatalogSnapshot:
        snapshot = self._snapshot
        if snapshot is None:
            raise CatalogUnavailable("Catalog has not been loaded yet")
        return snapshot

    def _checkout(self) -> CatalogSnapshot:
        snapshot = self._require_snapshot()
        snapshot.readers += 1
        return snapshot

    def _release(self, snapshot: CatalogSnapshot) -> None:
        snapshot.readers -= 1
        if snapshot.retired and snapshot.readers == 0:
            logger.info(f"Dropping retired index {snapshot.index.collection_name}")
            snapshot.index.drop()

    def _is_stale(self, snapshot: CatalogSnapshot) -> bool:
        return time.monotonic() - snapshot.loaded_at >= self.refresh_interval
