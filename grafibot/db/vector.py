"""
Qdrant vector database client for semantic product search.

Every catalog refresh builds a brand new collection; the old one keeps
answering queries until the caller swaps to the new index. Scores are
cosine similarities (higher is better).
"""

import logging
import uuid
from typing import Optional

from qdrant_client import QdrantClient, models
from qdrant_client.http.exceptions import UnexpectedResponse

from grafibot.config import settings
from grafibot.core.catalog.models import ConsolidatedProduct

logger = logging.getLogger(__name__)

UPSERT_BATCH_SIZE = 256


class ProductIndex:
    """Immutable similarity index over one catalog snapshot."""

    def __init__(
        self,
        vector_db: "VectorDB",
        collection_name: str | None,
        products: dict[int, ConsolidatedProduct],
    ):
        self.vector_db = vector_db
        self.collection_name = collection_name
        self.products = products

    def query(
        self,
        query_vector: list[float],
        limit: int | None = None,
    ) -> list[tuple[ConsolidatedProduct, float]]:
        """
        Search for similar products.

        Args:
            query_vector: Query embedding vector
            limit: Number of results to return

        Returns:
            (product, cosine similarity) pairs, best first
        """
        if self.collection_name is None or not self.products:
            return []

        limit = limit or settings.search_top_k
        response = self.vector_db.client.query_points(
            collection_name=self.collection_name,
            query=query_vector,
            limit=limit,
            with_payload=False,
        )

        results = []
        for point in response.points:
            product = self.products.get(int(point.id))
            if product is not None:
                results.append((product, float(point.score)))
        return results

    def drop(self) -> None:
        """Delete the backing collection."""
        if self.collection_name is None:
            return
        self.vector_db.delete_collection(self.collection_name)
        self.collection_name = None


class VectorDB:
    """Qdrant vector database manager."""

    def __init__(
        self,
        location: str | None = None,
        host: str | None = None,
        port: int | None = None,
        collection_prefix: str | None = None,
    ):
        self.location = location if location is not None else settings.qdrant_location
        self.host = host or settings.qdrant_host
        self.port = port or settings.qdrant_port
        self.collection_prefix = collection_prefix or settings.qdrant_collection_prefix
        self._client: Optional[QdrantClient] = None

    @property
    def client(self) -> QdrantClient:
        """Get or create Qdrant client."""
        if self._client is None:
            if self.location:
                self._client = QdrantClient(location=self.location)
            else:
                self._client = QdrantClient(host=self.host, port=self.port)
        return self._client

    def build_index(
        self,
        products: list[ConsolidatedProduct],
        vectors: list[list[float]],
    ) -> ProductIndex:
        """
        Create a fresh collection holding one point per product.

        Args:
            products: Consolidated products
            vectors: Embeddings aligned with `products`

        Returns:
            ProductIndex over the new collection
        """
        if len(products) != len(vectors):
            raise ValueError(
                f"Got {len(vectors)} vectors for {len(products)} products"
            )

        by_id = {p.product_id: p for p in products}
        if not products:
            return ProductIndex(self, None, by_id)

        collection_name = f"{self.collection_prefix}_{uuid.uuid4().hex[:8]}"
        self.client.create_collection(
            collection_name=collection_name,
            vectors_config=models.VectorParams(
                size=len(vectors[0]),
                distance=models.Distance.COSINE,
            ),
        )

        try:
            points = [
                models.PointStruct(id=p.product_id, vector=v, payload=p.to_payload())
                for p, v in zip(products, vectors)
            ]
            for start in range(0, len(points), UPSERT_BATCH_SIZE):
                self.client.upsert(
                    collection_name=collection_name,
                    points=points[start:start + UPSERT_BATCH_SIZE],
                )
        except Exception:
            self.delete_collection(collection_name)
            raise

        logger.info(f"Built collection {collection_name} with {len(points)} products")
        return ProductIndex(self, collection_name, by_id)

    def delete_collection(self, collection_name: str) -> None:
        """Delete a collection, ignoring missing ones."""
        try:
            self.client.delete_collection(collection_name)
        except UnexpectedResponse:
            pass  # Collection doesn't exist

    def close(self) -> None:
        """Close client connection."""
        if self._client:
            self._client.close()
            self._client = None


# Global vector DB instance
vector_db = VectorDB()
