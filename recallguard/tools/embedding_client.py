"""
Embedding Client - Text to Vector Conversion and Reranking

Defines the EmbeddingProvider contract consumed by the vector index, the
hybrid retriever and the decision engine, plus the Cohere-backed provider.

Degradation contract:
- embed() returns an empty list when the provider is unavailable or fails;
  callers treat empty as "degrade, do not fail".
- rerank() raises ProviderUnavailableError; the decision engine falls back
  to ranking candidates by their retrieval score.
"""

import logging
from typing import Optional, Protocol, Sequence, runtime_checkable

from recallguard.models.embedding import EmbeddingMode, RerankResult
from recallguard.tools.cohere_client import CohereClient
from recallguard.utils.error_handling import ProviderUnavailableError

logger = logging.getLogger(__name__)


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Dense embedding and cross-encoder rerank capability."""

    async def embed(self, texts: Sequence[str], mode: EmbeddingMode) -> list[list[float]]:
        ...

    async def rerank(self, query: str, documents: Sequence[str], top_n: int) -> list[RerankResult]:
        ...


class CohereEmbeddingClient:
    """
    EmbeddingProvider backed by Cohere embed/rerank models.

    Model names and credentials come from CohereConfig.
    """

    def __init__(self, client: Optional[CohereClient] = None):
        self._client = client or CohereClient()

    @property
    def available(self) -> bool:
        return self._client.available

    async def embed(self, texts: Sequence[str], mode: EmbeddingMode) -> list[list[float]]:
        """
        Embed texts in one request.

        Returns:
            One vector per text, or an empty list when unavailable.
        """
        if not texts or not self._client.available:
            return []

        try:
            data = await self._client.post(
                "/v1/embed",
                {
                    "texts": list(texts),
                    "model": self._client.config.embed_model,
                    "input_type": EmbeddingMode(mode).value,
                },
            )
        except ProviderUnavailableError as e:
            logger.error(f"Failed to embed {len(texts)} texts: {e}")
            return []

        embeddings = data.get("embeddings")
        if isinstance(embeddings, dict):
            # embedding_types responses nest vectors by type
            embeddings = embeddings.get("float")
        if not isinstance(embeddings, list) or len(embeddings) != len(texts):
            logger.error("Embedding response did not contain one vector per text")
            return []

        return [[float(x) for x in vector] for vector in embeddings]

    async def rerank(self, query: str, documents: Sequence[str], top_n: int) -> list[RerankResult]:
        """
        Score documents against the query, best first.

        Raises:
            ProviderUnavailableError: Provider missing or failing.
        """
        if not documents:
            return []

        data = await self._client.post(
            "/v1/rerank",
            {
                "model": self._client.config.rerank_model,
                "query": query,
                "documents": list(documents),
                "top_n": min(top_n, len(documents)),
            },
        )

        results = data.get("results")
        if not isinstance(results, list):
            raise ProviderUnavailableError("Rerank response missing results")

        try:
            ranked = [
                RerankResult(index=int(r["index"]), relevance_score=float(r["relevance_score"]))
                for r in results
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderUnavailableError(f"Malformed rerank result: {e!r}") from e

        return [r for r in ranked if 0 <= r.index < len(documents)]

    async def close(self) -> None:
        await self._client.close()
