# Rules Package
"""
Deterministic rules applied after a match is accepted.
"""

from recallguard.rules.urgency_rules import UrgencyRules

__all__ = ["UrgencyRules"]
