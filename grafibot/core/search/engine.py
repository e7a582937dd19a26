"""
Product search engine - similarity retrieval, re-ranking and dialogue shaping.
"""

import logging

from grafibot.config import settings
from grafibot.core.catalog.service import CatalogService
from grafibot.core.errors import CatalogError
from grafibot.core.search.outcomes import (
    ManyResults,
    NoResults,
    SearchError,
    SearchOutcome,
    SearchSuccess,
)
from grafibot.core.search.ranking import rerank

logger = logging.getLogger(__name__)


class ProductSearchEngine:
    """Turns a free-text query into a dialogue-facing outcome."""

    def __init__(
        self,
        catalog: CatalogService,
        top_k: int | None = None,
        similarity_threshold: float | None = None,
        presentation_threshold: int | None = None,
        exact_match_bonus: float | None = None,
        keyword_bonus: float | None = None,
        edge_token_bonus: float | None = None,
    ):
        self.catalog = catalog
        self.top_k = top_k or settings.search_top_k
        self.similarity_threshold = (
            similarity_threshold
            if similarity_threshold is not None
            else settings.similarity_threshold
        )
        self.presentation_threshold = presentation_threshold or settings.presentation_threshold
        self.exact_match_bonus = (
            exact_match_bonus if exact_match_bonus is not None else settings.exact_match_bonus
        )
        self.keyword_bonus = keyword_bonus if keyword_bonus is not None else settings.keyword_bonus
        self.edge_token_bonus = (
            edge_token_bonus if edge_token_bonus is not None else settings.edge_token_bonus
        )

    async def search(self, query: str) -> SearchOutcome:
        """
        Search the catalog.

        Args:
            query: Free-text product description

        Returns:
            ManyResults, SearchSuccess, NoResults or SearchError
        """
        query = query.strip()
        if not query:
            return NoResults()

        try:
            candidates = await self.catalog.query(query, self.top_k)
        except CatalogError as e:
            logger.error(f"Search unavailable for '{query}': {e}")
            return SearchError()

        accepted = [
            (product, score)
            for product, score in candidates
            if score >= self.similarity_threshold
        ]

        ranked = rerank(
            query,
            accepted,
            exact_match_bonus=self.exact_match_bonus,
            keyword_bonus=self.keyword_bonus,
            edge_token_bonus=self.edge_token_bonus,
        )

        # The catalog already drops these; re-check against the snapshot data
        products = [c.product for c in ranked if c.product.is_available]

        logger.info(
            f"Search '{query}': {len(candidates)} candidates, "
            f"{len(accepted)} above threshold, {len(products)} available"
        )

        if len(products) > self.presentation_threshold:
            return ManyResults(count=len(products))
        if products:
            return SearchSuccess(products=products)
        return NoResults()
