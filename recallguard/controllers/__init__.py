from recallguard.controllers.matching_controller import MatchingController, MatchingReport

__all__ = ["MatchingController", "MatchingReport"]
