from recallguard.policies.match_policy import MatchPolicy

__all__ = ["MatchPolicy"]
