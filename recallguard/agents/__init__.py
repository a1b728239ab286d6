# Agents Package
"""
Matching pipeline agents.

Pipeline: HybridRetriever -> DecisionEngine (rerank, threshold, urgency, persist)
Vehicles: VehicleMatcher -> DecisionEngine.create_alert
"""

from recallguard.agents.retriever import HybridRetriever, keyword_tokens
from recallguard.agents.decision_engine import DecisionEngine
from recallguard.agents.vehicle_matcher import VehicleMatcher

__all__ = [
    "HybridRetriever",
    "keyword_tokens",
    "DecisionEngine",
    "VehicleMatcher",
]
