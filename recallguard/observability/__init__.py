from recallguard.observability.metrics import MatchingMetrics

__all__ = ["MatchingMetrics"]
