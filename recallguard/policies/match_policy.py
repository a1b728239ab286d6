"""
Match Policy - Acceptance Thresholds per Category

A reranked candidate becomes an alert iff its relevance score is at least
the threshold of the item's category. Vehicles are matched by exact lookup
and have no threshold.

The default thresholds (food 0.40, product 0.65) are empirical; product is
stricter because product names share generic vocabulary across unrelated
brands. Both are expected to be recalibrated against labeled data, so they
are read from MatchingConfig.
"""

import logging
from typing import Optional

from pydantic import BaseModel, Field

from recallguard.config.settings import MatchingConfig
from recallguard.models.item import ItemCategory

logger = logging.getLogger(__name__)


class MatchPolicy(BaseModel):
    """Retrieval and acceptance parameters for a matching pass."""

    food_threshold: float = Field(0.40, ge=0.0, le=1.0)
    product_threshold: float = Field(0.65, ge=0.0, le=1.0)
    top_k: int = Field(50, ge=1, description="Dense candidates per item")
    rerank_top_n: int = Field(10, ge=1, description="Rerank results considered per item")
    lexical_prior: float = Field(0.9, ge=0.0, le=1.0)
    model_number_prior: float = Field(0.95, ge=0.0, le=1.0)

    class Config:
        frozen = True

    @classmethod
    def from_config(cls, config: Optional[MatchingConfig] = None) -> "MatchPolicy":
        config = config or MatchingConfig()
        return cls(
            food_threshold=config.food_threshold,
            product_threshold=config.product_threshold,
            top_k=config.top_k,
            rerank_top_n=config.rerank_top_n,
            lexical_prior=config.lexical_prior,
            model_number_prior=config.model_number_prior,
        )

    def threshold(self, category: str) -> Optional[float]:
        """Acceptance threshold, None for categories matched by exact lookup."""
        category = ItemCategory(category)
        if category == ItemCategory.FOOD:
            return self.food_threshold
        if category == ItemCategory.PRODUCT:
            return self.product_threshold
        return None

    def accepts(self, category: str, score: float) -> bool:
        """Inclusive comparison: a score equal to the threshold is accepted."""
        threshold = self.threshold(category)
        if threshold is None:
            return True
        return score >= threshold
