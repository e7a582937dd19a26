"""
Heuristic re-ranking of similarity candidates by product name.
"""

import re
import unicodedata
from dataclasses import dataclass

from grafibot.core.catalog.models import ConsolidatedProduct

# Function words plus catalog terms too generic to tell products apart
STOPWORDS = frozenset({
    "a", "al", "con", "de", "del", "el", "en", "la", "las", "lo", "los",
    "para", "por", "un", "una", "unos", "unas", "y", "o",
    "quiero", "busco", "necesito", "tienen", "hay",
    "papel", "tinta", "color", "colores", "producto", "productos",
})

_TOKEN_RE = re.compile(r"[a-z0-9]+")


def normalize(text: str) -> str:
    """Lowercase and strip diacritics."""
    decomposed = unicodedata.normalize("NFKD", text.lower())
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def tokenize(text: str) -> list[str]:
    """Split normalized text into alphanumeric tokens."""
    return _TOKEN_RE.findall(normalize(text))


@dataclass
class RankedCandidate:
    """Candidate with its similarity and heuristic score."""
    product: ConsolidatedProduct
    similarity: float
    score: float

    def sort_key(self) -> tuple:
        return (-self.score, -self.similarity, self.product.product_id)


def name_bonus(
    query: str,
    product_name: str,
    exact_match_bonus: float,
    keyword_bonus: float,
    edge_token_bonus: float,
) -> float:
    """
    Score how well a product name matches the query text.

    Args:
        query: Raw user query
        product_name: Product display name
        exact_match_bonus: Added when the whole normalized query is in the name
        keyword_bonus: Added per non-stopword query token found in the name
        edge_token_bonus: Added when the first or last tokens coincide

    Returns:
        Sum of bonuses
    """
    query_tokens = tokenize(query)
    name_tokens = tokenize(product_name)
    if not query_tokens or not name_tokens:
        return 0.0

    bonus = 0.0
    if f" {' '.join(query_tokens)} " in f" {' '.join(name_tokens)} ":
        bonus += exact_match_bonus

    name_set = set(name_tokens)
    for token in set(query_tokens):
        if token not in STOPWORDS and token in name_set:
            bonus += keyword_bonus

    edges = {name_tokens[0], name_tokens[-1]}
    if query_tokens[0] in edges or query_tokens[-1] in edges:
        bonus += edge_token_bonus

    return bonus


def rerank(
    query: str,
    candidates: list[tuple[ConsolidatedProduct, float]],
    exact_match_bonus: float,
    keyword_bonus: float,
    edge_token_bonus: float,
) -> list[RankedCandidate]:
    """Apply name bonuses and sort best first, deterministic on ties."""
    ranked = [
        RankedCandidate(
            product=product,
            similarity=similarity,
            score=similarity + name_bonus(
                query,
                product.name,
                exact_match_bonus,
                keyword_bonus,
                edge_token_bonus,
            ),
        )
        for product, similarity in candidates
    ]
    ranked.sort(key=RankedCandidate.sort_key)
    return ranked
