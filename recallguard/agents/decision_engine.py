"""
Decision Engine Agent - Rerank, Threshold, Urgency, Persist

Turns retrieval candidates for one item into alerts:
1. Rerank candidates against the item query (fallback: retrieval scores)
2. Accept results scoring at least the category threshold
3. Skip pairs that already have an alert
4. Classify urgency and generate the message (fallback: generic text)
5. Persist through storage

Provider failures degrade to the fallback paths and are logged; they never
reach the caller. A uniqueness violation reported by storage means another
run created the alert first and is treated as a skip.
"""

import logging
from typing import Optional, Union

from recallguard.models.alert import Alert
from recallguard.models.embedding import Candidate
from recallguard.models.item import FoodItem, ItemCategory, Product, Vehicle
from recallguard.models.recall import FoodRecall, ProductRecall, VehicleRecall
from recallguard.observability.metrics import MatchingMetrics
from recallguard.policies.match_policy import MatchPolicy
from recallguard.rules.urgency_rules import UrgencyRules
from recallguard.storage.base import RecallStorage
from recallguard.tools.embedding_client import EmbeddingProvider
from recallguard.tools.message_generator import TextGenerator, generate_alert_message
from recallguard.utils.error_handling import DuplicateAlertError, ProviderUnavailableError

logger = logging.getLogger(__name__)

AnyItem = Union[FoodItem, Vehicle, Product]
AnyRecall = Union[FoodRecall, VehicleRecall, ProductRecall]


class DecisionEngine:
    """
    Agent responsible for:
    1. Scoring candidates with the reranker
    2. Applying the acceptance policy
    3. Producing deduplicated, persisted Alerts
    """

    AGENT_NAME = "DecisionEngine"

    def __init__(
        self,
        storage: RecallStorage,
        embedder: Optional[EmbeddingProvider] = None,
        generator: Optional[TextGenerator] = None,
        policy: Optional[MatchPolicy] = None,
        urgency_rules: Optional[UrgencyRules] = None,
        metrics: Optional[MatchingMetrics] = None,
    ):
        """
        Initialize decision engine.

        Args:
            storage: Alert and recall persistence.
            embedder: Rerank provider; None means always use retrieval scores.
            generator: Alert message generator; None means generic messages.
            policy: Thresholds and rerank size.
            urgency_rules: Urgency classification.
            metrics: Optional Prometheus metrics.
        """
        self._storage = storage
        self._embedder = embedder
        self._generator = generator
        self._policy = policy or MatchPolicy()
        self._urgency = urgency_rules or UrgencyRules()
        self._metrics = metrics

    async def rank(self, item: AnyItem, candidates: list[Candidate]) -> list[tuple[Candidate, float]]:
        """
        Score candidates, best first, at most rerank_top_n of them.

        Returns:
            (candidate, relevance score) pairs.
        """
        top_n = self._policy.rerank_top_n
        if not candidates:
            return []

        if self._embedder is not None:
            try:
                results = await self._embedder.rerank(
                    item.rerank_query,
                    [c.entry.text for c in candidates],
                    top_n,
                )
                ranked = [
                    (candidates[r.index], r.relevance_score)
                    for r in results
                    if r.index < len(candidates)
                ]
                ranked.sort(key=lambda pair: pair[1], reverse=True)
                return ranked[:top_n]
            except ProviderUnavailableError as e:
                logger.warning(f"[{self.AGENT_NAME}] Rerank unavailable for item {item.id}: {e}")
            except Exception as e:
                logger.error(
                    f"[{self.AGENT_NAME}] Rerank failed for item {item.id} "
                    f"({type(e).__name__}: {e}), using retrieval scores"
                )

        if self._metrics:
            self._metrics.record_fallback("rerank")

        fallback = sorted(candidates, key=lambda c: c.score, reverse=True)
        return [(c, c.score) for c in fallback[:top_n]]

    async def decide(self, item: AnyItem, candidates: list[Candidate]) -> list[Alert]:
        """
        Decide which candidates become alerts for an item.

        Args:
            item: Tracked item being matched.
            candidates: Output of the retriever.

        Returns:
            Alerts created by this call (existing alerts are not returned).
        """
        if not candidates:
            return []

        ranked = await self.rank(item, candidates)
        created: list[Alert] = []

        for candidate, score in ranked:
            if not self._policy.accepts(item.category, score):
                logger.debug(
                    f"[{self.AGENT_NAME}] Rejected {candidate.recall_id} for item {item.id} "
                    f"(score {score:.3f} < {self._policy.threshold(item.category)})"
                )
                continue

            recall = await self._storage.get_recall(item.category, candidate.recall_id)
            if recall is None:
                logger.warning(
                    f"[{self.AGENT_NAME}] Recall {candidate.recall_id} indexed but not in storage"
                )
                continue

            alert = await self.create_alert(item, recall, score)
            if alert is not None:
                created.append(alert)

        logger.info(
            f"[{self.AGENT_NAME}] Item {item.id}: {len(ranked)} ranked, {len(created)} new alerts"
        )
        return created

    async def create_alert(self, item: AnyItem, recall: AnyRecall, score: float) -> Optional[Alert]:
        """
        Persist an alert for an accepted (item, recall) pair.

        Returns:
            The created Alert, or None when one already exists.
        """
        category = ItemCategory(item.category)
        recall_id = recall.natural_key

        if await self._storage.alert_exists(category, item.id, recall_id):
            logger.debug(f"[{self.AGENT_NAME}] Alert exists for item {item.id} / {recall_id}")
            return None

        urgency = self._urgency.classify(recall)
        message, used_fallback = await generate_alert_message(self._generator, recall, item)
        if used_fallback and self._metrics:
            self._metrics.record_fallback("generate")

        alert = Alert(
            category=category,
            item_id=item.id,
            recall_id=recall_id,
            score=max(0.0, min(1.0, score)),
            urgency=urgency,
            message=message,
        )

        try:
            alert = await self._storage.create_alert(alert)
        except DuplicateAlertError:
            logger.info(f"[{self.AGENT_NAME}] Concurrent alert for item {item.id} / {recall_id}, skipping")
            return None

        if self._metrics:
            self._metrics.record_alert(category.value, urgency.value)

        logger.info(
            f"[{self.AGENT_NAME}] Created {urgency.value} alert for {category.value} item {item.id} "
            f"/ recall {recall_id} (score {alert.score:.3f})"
        )
        return alert
