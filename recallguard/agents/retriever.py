"""
Hybrid Retriever Agent - Dense + Lexical Candidate Generation

Proposes recalls of the item's category for reranking:
1. Dense: cosine similarity of the item query against every recall vector
2. Model number: case-insensitive substring match (products only)
3. Lexical: recall text containing every query token

Lexical paths keep matching working when the embedding provider is
unavailable. Candidates are deduplicated by recall id; the first path that
produced a recall keeps it (dense, then model number, then lexical) and
scores are never merged.
"""

import logging
from typing import Optional, Union

from recallguard.models.embedding import Candidate, CandidateSource, EmbeddingMode, VectorEntry
from recallguard.models.item import FoodItem, Product, Vehicle
from recallguard.policies.match_policy import MatchPolicy
from recallguard.tools.embedding_client import EmbeddingProvider
from recallguard.tools.vector_store import Partition, VectorIndex, cosine_similarity

logger = logging.getLogger(__name__)

AnyItem = Union[FoodItem, Vehicle, Product]

MIN_TOKEN_LENGTH = 3


def keyword_tokens(text: str) -> list[str]:
    """Lowercased whitespace tokens longer than two characters."""
    return [t for t in text.lower().split() if len(t) >= MIN_TOKEN_LENGTH]


class HybridRetriever:
    """
    Agent responsible for:
    1. Ranking recall entries by dense similarity
    2. Finding keyword and model-number matches
    3. Producing a deduplicated candidate list
    """

    AGENT_NAME = "HybridRetriever"

    def __init__(
        self,
        index: VectorIndex,
        embedder: Optional[EmbeddingProvider] = None,
        policy: Optional[MatchPolicy] = None,
    ):
        self._index = index
        self._embedder = embedder
        self._policy = policy or MatchPolicy()

    async def retrieve(self, item: AnyItem, top_k: Optional[int] = None) -> list[Candidate]:
        """
        Generate candidates for one item.

        Args:
            item: Tracked item.
            top_k: Dense candidates to keep (defaults to the policy value).

        Returns:
            Candidates in dense, model-number, lexical order.
        """
        top_k = top_k or self._policy.top_k
        entries = self._index.all_of(item.category, Partition.RECALLS)
        if not entries:
            logger.debug(f"[{self.AGENT_NAME}] No {item.category} recalls indexed")
            return []

        dense = await self._dense(item, entries, top_k)
        model_number = self._model_number(item, entries)
        lexical = self._lexical(item, entries)

        candidates: list[Candidate] = []
        seen: set[str] = set()
        for candidate in (*dense, *model_number, *lexical):
            if candidate.recall_id in seen:
                continue
            seen.add(candidate.recall_id)
            candidates.append(candidate)

        logger.info(
            f"[{self.AGENT_NAME}] {len(candidates)} candidates for item {item.id} "
            f"(dense={len(dense)}, model_number={len(model_number)}, lexical={len(lexical)})"
        )
        return candidates

    async def _dense(self, item: AnyItem, entries: list[VectorEntry], top_k: int) -> list[Candidate]:
        if self._embedder is None:
            return []

        vectors = await self._embedder.embed([item.query_text], EmbeddingMode.QUERY)
        if not vectors or not vectors[0]:
            logger.info(f"[{self.AGENT_NAME}] Query embedding unavailable, lexical-only for item {item.id}")
            return []

        query = vectors[0]
        # entries indexed while the provider was down have no vector; the
        # lexical paths still see them
        scored = [
            Candidate(entry=entry, score=cosine_similarity(query, entry.embedding), source=CandidateSource.DENSE)
            for entry in entries
            if entry.embedding
        ]
        scored.sort(key=lambda c: (-c.score, c.recall_id))
        return scored[:top_k]

    def _model_number(self, item: AnyItem, entries: list[VectorEntry]) -> list[Candidate]:
        if not isinstance(item, Product) or not item.model_number or not item.model_number.strip():
            return []

        needle = item.model_number.strip().lower()
        return [
            Candidate(entry=entry, score=self._policy.model_number_prior, source=CandidateSource.MODEL_NUMBER)
            for entry in sorted(entries, key=lambda e: e.id)
            if needle in entry.text.lower()
        ]

    def _lexical(self, item: AnyItem, entries: list[VectorEntry]) -> list[Candidate]:
        tokens = keyword_tokens(item.rerank_query)
        if not tokens:
            return []

        return [
            Candidate(entry=entry, score=self._policy.lexical_prior, source=CandidateSource.LEXICAL)
            for entry in sorted(entries, key=lambda e: e.id)
            if all(token in entry.text.lower() for token in tokens)
        ]
