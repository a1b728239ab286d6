# Tools Package
"""
External integrations and low-level utilities.

- cohere_client.py: Cohere REST connection
- embedding_client.py: Text to vector conversion and reranking
- message_generator.py: Alert message generation with fallback
- vector_store.py: In-memory per-category vector index
- push_transport.py: VAPID Web Push delivery
"""

from recallguard.tools.cohere_client import CohereClient
from recallguard.tools.embedding_client import CohereEmbeddingClient, EmbeddingProvider
from recallguard.tools.message_generator import (
    CohereMessageGenerator,
    TextGenerator,
    fallback_message,
    generate_alert_message,
)
from recallguard.tools.vector_store import Partition, VectorIndex, cosine_similarity
from recallguard.tools.push_transport import PushTransport, WebPushTransport, web_push_urgency

__all__ = [
    "CohereClient",
    "CohereEmbeddingClient",
    "EmbeddingProvider",
    "CohereMessageGenerator",
    "TextGenerator",
    "fallback_message",
    "generate_alert_message",
    "Partition",
    "VectorIndex",
    "cosine_similarity",
    "PushTransport",
    "WebPushTransport",
    "web_push_urgency",
]
