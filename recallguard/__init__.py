# RecallGuard - Main Package
"""
Recall Matching & Alerting Engine.

This package provides:
- In-memory vector index over tracked items and recalls
- Hybrid (dense + lexical) recall retrieval
- Reranking and category-specific alert decisions
- Exact make/model/year vehicle recall matching
- Web push fan-out with subscription pruning
"""

__version__ = "0.1.0"
