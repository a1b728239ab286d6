# Storage Package
"""
Persistence contract and the in-memory reference implementation.
"""

from recallguard.storage.base import RecallStorage
from recallguard.storage.memory import InMemoryStorage, normalize_key

__all__ = ["RecallStorage", "InMemoryStorage", "normalize_key"]
