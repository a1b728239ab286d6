"""
Vector Store - In-Memory Per-Category Vector Index

Holds one VectorEntry per tracked item and per recall, partitioned by
category. Entries are derived data: the index starts empty and bulk_load()
rebuilds it from storage on process start.

Concurrency:
- upsert() replaces an entry atomically under a lock (last write wins).
- all_of() returns a snapshot list, so a scan running alongside upserts sees
  either the old or the new entry for an id, never a partial one.
"""

import logging
import threading
from enum import Enum
from typing import Any, Iterable, Optional, Sequence

import numpy as np

from recallguard.models.embedding import EmbeddingMode, VectorEntry
from recallguard.models.item import ItemCategory
from recallguard.tools.embedding_client import EmbeddingProvider

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 96


class Partition(str, Enum):
    """Which side of the match an entry belongs to."""
    ITEMS = "items"
    RECALLS = "recalls"


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors.

    Returns 0.0 when the lengths differ, either vector is empty, or either
    magnitude is zero. The result is clipped to [-1, 1].
    """
    if len(a) != len(b) or len(a) == 0:
        return 0.0

    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    magnitude = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if magnitude == 0.0 or not np.isfinite(magnitude):
        return 0.0

    score = float(np.dot(va, vb) / magnitude)
    return max(-1.0, min(1.0, score))


class VectorIndex:
    """
    In-memory vector index shared by matching and ingestion.

    Responsibilities:
    1. Upsert/remove entries per category and partition
    2. Provide consistent snapshots for full-scan similarity search
    3. Rebuild itself from storage with batched embedding requests
    """

    def __init__(self, batch_size: int = DEFAULT_BATCH_SIZE):
        self.batch_size = batch_size
        self._lock = threading.Lock()
        self._entries: dict[tuple[ItemCategory, Partition], dict[str, VectorEntry]] = {
            (category, partition): {}
            for category in ItemCategory
            for partition in Partition
        }

    def _bucket(self, category: str, partition: str) -> dict[str, VectorEntry]:
        return self._entries[(ItemCategory(category), Partition(partition))]

    def upsert(
        self,
        category: str,
        id: str,
        text: str,
        embedding: Sequence[float],
        metadata: Optional[dict[str, Any]] = None,
        partition: str = Partition.RECALLS,
    ) -> VectorEntry:
        """Insert or replace the entry for `id` (last write wins)."""
        entry = VectorEntry(
            id=str(id),
            text=text,
            embedding=list(embedding),
            metadata=metadata or {},
        )
        with self._lock:
            self._bucket(category, partition)[entry.id] = entry
        return entry

    def remove(self, category: str, id: str, partition: str = Partition.RECALLS) -> bool:
        """Remove the entry for `id`. Returns False when it was absent."""
        with self._lock:
            return self._bucket(category, partition).pop(str(id), None) is not None

    def get(self, category: str, id: str, partition: str = Partition.RECALLS) -> Optional[VectorEntry]:
        with self._lock:
            return self._bucket(category, partition).get(str(id))

    def all_of(self, category: str, partition: str = Partition.RECALLS) -> list[VectorEntry]:
        """Snapshot of every entry in the partition; no ordering guarantee."""
        with self._lock:
            return list(self._bucket(category, partition).values())

    def count(self, category: str, partition: str = Partition.RECALLS) -> int:
        with self._lock:
            return len(self._bucket(category, partition))

    def stats(self) -> dict[str, dict[str, int]]:
        """Entry counts keyed by category then partition."""
        with self._lock:
            return {
                category.value: {
                    partition.value: len(self._entries[(category, partition)])
                    for partition in Partition
                }
                for category in ItemCategory
            }

    def clear(self) -> None:
        with self._lock:
            for bucket in self._entries.values():
                bucket.clear()

    async def add_items(self, items: Iterable, embedder: Optional[EmbeddingProvider]) -> int:
        """
        Embed and index tracked items.

        Items whose batch could not be embedded are skipped; item vectors
        are only useful for dense similarity.

        Returns:
            Number of entries written.
        """
        items = list(items)
        written = 0
        for start in range(0, len(items), self.batch_size):
            batch = items[start:start + self.batch_size]
            texts = [item.query_text for item in batch]
            embeddings = await embedder.embed(texts, EmbeddingMode.DOCUMENT) if embedder else []
            if len(embeddings) != len(batch):
                logger.warning(f"Skipping {len(batch)} item entries: embeddings unavailable")
                continue
            for item, text, vector in zip(batch, texts, embeddings):
                self.upsert(
                    item.category,
                    str(item.id),
                    text,
                    vector,
                    {"is_active": item.is_active, "name": item.display_name},
                    partition=Partition.ITEMS,
                )
                written += 1
        return written

    async def add_recalls(self, recalls: Iterable, embedder: Optional[EmbeddingProvider]) -> int:
        """
        Embed and index recalls in batches of `batch_size` texts.

        Recalls are indexed even when their batch could not be embedded
        (empty vector), so lexical retrieval still sees them.

        Returns:
            Number of entries written.
        """
        recalls = list(recalls)
        written = 0
        for start in range(0, len(recalls), self.batch_size):
            batch = recalls[start:start + self.batch_size]
            texts = [recall.document_text for recall in batch]
            embeddings = await embedder.embed(texts, EmbeddingMode.DOCUMENT) if embedder else []
            if len(embeddings) != len(batch):
                if embeddings:
                    logger.warning("Embedding batch size mismatch; indexing batch without vectors")
                embeddings = [[] for _ in batch]
            for recall, text, vector in zip(batch, texts, embeddings):
                self.upsert(
                    recall.category,
                    recall.natural_key,
                    text,
                    vector,
                    recall.index_metadata(),
                    partition=Partition.RECALLS,
                )
                written += 1
        return written

    def missing_vectors(self, partition: str = Partition.RECALLS) -> list[tuple[ItemCategory, VectorEntry]]:
        """Entries of every category that were indexed without an embedding."""
        with self._lock:
            return [
                (category, entry)
                for category in ItemCategory
                for entry in self._entries[(category, Partition(partition))].values()
                if not entry.embedding
            ]

    async def reembed_missing(self, embedder: Optional[EmbeddingProvider]) -> int:
        """
        Retry embedding for recall entries indexed while the provider was down.

        Entries stay vectorless when their batch fails again.

        Returns:
            Number of entries that received a vector.
        """
        pending = self.missing_vectors(Partition.RECALLS)
        if embedder is None or not pending:
            return 0

        written = 0
        for start in range(0, len(pending), self.batch_size):
            batch = pending[start:start + self.batch_size]
            embeddings = await embedder.embed([entry.text for _, entry in batch], EmbeddingMode.DOCUMENT)
            if len(embeddings) != len(batch):
                logger.debug(f"Re-embedding skipped for {len(batch)} recall entries: provider unavailable")
                continue
            for (category, entry), vector in zip(batch, embeddings):
                if not vector:
                    continue
                current = self.get(category, entry.id, Partition.RECALLS)
                # a concurrent upsert already replaced the entry
                if current is None or current.embedding:
                    continue
                self.upsert(category, entry.id, entry.text, vector, entry.metadata, partition=Partition.RECALLS)
                written += 1

        if written:
            logger.info(f"Re-embedded {written} of {len(pending)} vectorless recall entries")
        return written

    async def bulk_load(self, storage, embedder: Optional[EmbeddingProvider]) -> dict[str, dict[str, int]]:
        """
        Rebuild the index from every tracked item and recall in storage.

        Returns:
            Entry counts after loading (see stats()).
        """
        for category in ItemCategory:
            items = await storage.list_tracked_items(category)
            recalls = await storage.list_recalls(category)
            if items:
                await self.add_items(items, embedder)
            if recalls:
                await self.add_recalls(recalls, embedder)

        stats = self.stats()
        logger.info(
            "Vector index initialized: "
            + ", ".join(
                f"{category}={counts[Partition.ITEMS.value]} items/{counts[Partition.RECALLS.value]} recalls"
                for category, counts in stats.items()
            )
        )
        return stats
