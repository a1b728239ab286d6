"""
Urgency Rules - Deterministic Severity Classification

Maps a recall to the urgency of the alert it produces:
1. Food: FDA classification (Class I -> HIGH, Class II -> MEDIUM, else LOW)
2. Product: hazard keywords (HIGH on a match, else MEDIUM)
3. Vehicle: consequence keywords (HIGH set, then MEDIUM set, else LOW)

Keyword lists come from MatchingConfig.
"""

import logging
import re
from typing import Optional, Sequence, Union

from recallguard.config.settings import MatchingConfig
from recallguard.models.alert import Urgency
from recallguard.models.recall import FoodRecall, ProductRecall, VehicleRecall

logger = logging.getLogger(__name__)

# FDA classifications are written "Class I", "Class II", "Class III"
_CLASS_PATTERN = re.compile(r"\bclass\s+(i{1,3})\b", re.IGNORECASE)


def _contains_any(text: Optional[str], keywords: Sequence[str]) -> bool:
    lowered = (text or "").lower()
    return any(k.lower() in lowered for k in keywords if k)


class UrgencyRules:
    """
    Urgency classification per recall kind.

    Evaluation never fails: missing fields fall through to the lowest
    urgency available for the kind.
    """

    def __init__(self, config: Optional[MatchingConfig] = None):
        config = config or MatchingConfig()
        self.high_hazard_keywords = list(config.high_hazard_keywords)
        self.vehicle_high_keywords = list(config.vehicle_high_keywords)
        self.vehicle_medium_keywords = list(config.vehicle_medium_keywords)

    @staticmethod
    def food(recall: FoodRecall) -> Urgency:
        match = _CLASS_PATTERN.search(recall.classification or "")
        if match is None:
            return Urgency.LOW
        level = match.group(1).upper()
        if level == "I":
            return Urgency.HIGH
        if level == "II":
            return Urgency.MEDIUM
        return Urgency.LOW

    def product(self, recall: ProductRecall) -> Urgency:
        if _contains_any(recall.hazard, self.high_hazard_keywords):
            return Urgency.HIGH
        return Urgency.MEDIUM

    def vehicle(self, recall: VehicleRecall) -> Urgency:
        if _contains_any(recall.consequence, self.vehicle_high_keywords):
            return Urgency.HIGH
        if _contains_any(recall.consequence, self.vehicle_medium_keywords):
            return Urgency.MEDIUM
        return Urgency.LOW

    def classify(self, recall: Union[FoodRecall, VehicleRecall, ProductRecall]) -> Urgency:
        """Dispatch on the recall kind."""
        if isinstance(recall, FoodRecall):
            urgency = self.food(recall)
        elif isinstance(recall, ProductRecall):
            urgency = self.product(recall)
        else:
            urgency = self.vehicle(recall)

        logger.debug(f"Urgency {urgency.value} for {recall.kind} recall {recall.natural_key}")
        return urgency
