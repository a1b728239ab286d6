"""
Embedding Models - Vector Index Entries and Retrieval Candidates

VectorEntry is derived data: rebuildable at any time from the source record
and owned by the in-process VectorIndex. Candidates and rerank results are
transient and never persisted.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EmbeddingMode(str, Enum):
    """Input type hint passed to the embedding provider."""
    DOCUMENT = "search_document"
    QUERY = "search_query"


class VectorEntry(BaseModel):
    """One indexed item or recall."""

    id: str = Field(..., description="Item id or recall natural key")
    text: str = Field(..., description="Text the embedding was computed from")
    embedding: list[float] = Field(default_factory=list, description="Opaque dense vector")
    metadata: dict[str, Any] = Field(default_factory=dict)

    class Config:
        frozen = True


class CandidateSource(str, Enum):
    """Retrieval path that surfaced a candidate."""
    DENSE = "dense"
    LEXICAL = "lexical"
    MODEL_NUMBER = "model_number"


class Candidate(BaseModel):
    """Recall entry proposed for reranking."""

    entry: VectorEntry
    score: float = Field(..., description="Cosine similarity or lexical prior")
    source: CandidateSource = Field(CandidateSource.DENSE)

    class Config:
        frozen = True

    @property
    def recall_id(self) -> str:
        return self.entry.id


class RerankResult(BaseModel):
    """Relevance of one candidate document against the query."""

    index: int = Field(..., ge=0, description="Position in the submitted document list")
    relevance_score: float = Field(..., description="Cross-encoder relevance (0-1)")

    class Config:
        frozen = True
