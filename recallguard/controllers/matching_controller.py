"""
MatchingController - Orchestrates matching passes and index lifecycle.

Responsibilities:
1. Rebuild the vector index from storage at startup
2. Run matching passes over active items with bounded concurrency
3. Isolate per-item failures so a pass always completes
4. Hand new alerts to the notification dispatcher in the background
5. Keep storage and index in sync when items or recalls are ingested

A pass is idempotent: re-running it on unchanged data creates no alerts.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Union

from recallguard.agents.decision_engine import DecisionEngine
from recallguard.agents.retriever import HybridRetriever
from recallguard.agents.vehicle_matcher import VehicleMatcher
from recallguard.config.settings import MatchingConfig
from recallguard.models.alert import Alert
from recallguard.models.item import FoodItem, ItemCategory, Product, Vehicle
from recallguard.models.recall import FoodRecall, ProductRecall, VehicleRecall
from recallguard.observability.metrics import MatchingMetrics
from recallguard.policies.match_policy import MatchPolicy
from recallguard.rules.urgency_rules import UrgencyRules
from recallguard.services.notification_dispatcher import NotificationDispatcher, build_alert_payload
from recallguard.storage.base import RecallStorage
from recallguard.tools.embedding_client import EmbeddingProvider
from recallguard.tools.message_generator import TextGenerator
from recallguard.tools.vector_store import Partition, VectorIndex
from recallguard.utils.error_handling import ErrorContext
from recallguard.utils.logging_context import item_scope, run_scope

logger = logging.getLogger(__name__)

AnyItem = Union[FoodItem, Vehicle, Product]
AnyRecall = Union[FoodRecall, VehicleRecall, ProductRecall]


@dataclass
class MatchingReport:
    """Outcome of one matching pass.

    Attributes:
        run_id: Correlation id present on every log line of the pass
        categories: Categories matched
        items_processed: Items whose pipeline completed
        items_failed: Items whose pipeline raised (isolated)
        alerts: Alerts created by this pass
        failures: "category:item_id" -> error message
        duration_seconds: Wall-clock duration
    """
    run_id: str
    categories: List[str]
    items_processed: int = 0
    items_failed: int = 0
    alerts: List[Alert] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)
    duration_seconds: float = 0.0

    @property
    def alerts_created(self) -> int:
        return len(self.alerts)

    def to_dict(self) -> Dict:
        return {
            "run_id": self.run_id,
            "categories": self.categories,
            "items_processed": self.items_processed,
            "items_failed": self.items_failed,
            "alerts_created": self.alerts_created,
            "alerts": [a.model_dump(mode="json") for a in self.alerts],
            "failures": self.failures,
            "duration_seconds": round(self.duration_seconds, 3),
        }


class MatchingController:
    """Controller wiring retrieval, decisions and dispatch for matching passes."""

    CONTROLLER_NAME = "MatchingController"

    def __init__(
        self,
        storage: RecallStorage,
        embedder: Optional[EmbeddingProvider] = None,
        generator: Optional[TextGenerator] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        index: Optional[VectorIndex] = None,
        config: Optional[MatchingConfig] = None,
        metrics: Optional[MatchingMetrics] = None,
    ):
        """Build the matching pipeline.

        Args:
            storage: Items, recalls and alerts.
            embedder: Embedding/rerank provider; None runs lexical-only.
            generator: Alert message generator; None uses generic messages.
            dispatcher: Push fan-out for new alerts; None disables notifications.
            index: Shared vector index (created when not provided).
            config: Matching configuration.
            metrics: Prometheus metrics.
        """
        self.config = config or MatchingConfig()
        self.storage = storage
        self.embedder = embedder
        self.dispatcher = dispatcher
        self.metrics = metrics
        self.policy = MatchPolicy.from_config(self.config)
        self.index = index or VectorIndex(batch_size=self.config.embed_batch_size)

        self.retriever = HybridRetriever(self.index, embedder, self.policy)
        self.engine = DecisionEngine(
            storage,
            embedder=embedder,
            generator=generator,
            policy=self.policy,
            urgency_rules=UrgencyRules(self.config),
            metrics=metrics,
        )
        self.vehicle_matcher = VehicleMatcher(storage, self.engine)
        self._initialized = False

    async def initialize(self) -> Dict[str, Dict[str, int]]:
        """Rebuild the vector index from storage. Safe to call again."""
        self.index.clear()
        stats = await self.index.bulk_load(self.storage, self.embedder)
        self._initialized = True
        self._publish_index_size()
        return stats

    async def run_matching_pass(self, category: Optional[str] = None) -> MatchingReport:
        """
        Match every active item of one category, or of all categories.

        Args:
            category: Restrict the pass to one category.

        Returns:
            MatchingReport; per-item failures are recorded, never raised.
        """
        if not self._initialized:
            await self.initialize()

        categories = [ItemCategory(category)] if category else list(ItemCategory)
        with run_scope() as run_id:
            report = MatchingReport(run_id=run_id, categories=[c.value for c in categories])
            started = time.monotonic()

            logger.info(f"[{self.CONTROLLER_NAME}] Matching pass started for {report.categories}")

            if await self.index.reembed_missing(self.embedder):
                self._publish_index_size()

            semaphore = asyncio.Semaphore(self.config.max_concurrency)
            for current in categories:
                items = await self.storage.list_active_tracked_items(current)
                await asyncio.gather(
                    *(self._match_isolated(item, semaphore, report) for item in items)
                )

            report.duration_seconds = time.monotonic() - started
            if self.metrics:
                self.metrics.observe_pass(report.duration_seconds)

            logger.info(
                f"[{self.CONTROLLER_NAME}] Matching pass finished: {report.items_processed} items, "
                f"{report.items_failed} failed, {report.alerts_created} new alerts "
                f"in {report.duration_seconds:.2f}s"
            )
        return report

    async def _match_isolated(
        self,
        item: AnyItem,
        semaphore: asyncio.Semaphore,
        report: MatchingReport,
    ) -> None:
        async with semaphore:
            with item_scope(item.category, item.id):
                async with ErrorContext(f"match_item:{item.category}:{item.id}", suppress=True) as ctx:
                    alerts = await self.match_item(item)

        if ctx.failed:
            report.items_failed += 1
            report.failures[f"{item.category}:{item.id}"] = str(ctx.error)
            if self.metrics:
                self.metrics.record_item(item.category, "failed")
            return

        report.items_processed += 1
        report.alerts.extend(alerts)
        if self.metrics:
            self.metrics.record_item(item.category, "matched" if alerts else "no_match")

    async def match_item(self, item: AnyItem) -> List[Alert]:
        """Run the pipeline for one item and notify on each new alert."""
        if isinstance(item, Vehicle):
            alerts = await self.vehicle_matcher.match(item)
        else:
            candidates = await self.retriever.retrieve(item, self.policy.top_k)
            alerts = await self.engine.decide(item, candidates)

        if self.dispatcher is not None:
            for alert in alerts:
                self.dispatcher.dispatch_in_background(build_alert_payload(alert, item))
        return alerts

    async def index_items(self, items: Iterable[AnyItem]) -> int:
        """Store tracked items and index them. Returns entries indexed."""
        items = list(items)
        for item in items:
            await self.storage.add_tracked_item(item)
        indexed = await self.index.add_items(items, self.embedder)
        self._publish_index_size()
        return indexed

    async def index_recalls(self, recalls: Iterable[AnyRecall]) -> int:
        """
        Ingest recalls idempotently by natural key.

        Returns:
            Number of recalls that were new to storage.
        """
        recalls = list(recalls)
        new = await self.storage.upsert_recalls(recalls)
        unindexed = [
            r for r in recalls
            if self.index.get(r.category, r.natural_key, Partition.RECALLS) is None
        ]
        if unindexed:
            await self.index.add_recalls(unindexed, self.embedder)
        await self.index.reembed_missing(self.embedder)
        self._publish_index_size()

        logger.info(
            f"[{self.CONTROLLER_NAME}] Ingested {len(recalls)} recalls: {new} new, {len(unindexed)} indexed"
        )
        return new

    async def remove_item(self, category: str, item_id: int) -> bool:
        """Delete an item from index and storage; its alerts go with it."""
        self.index.remove(category, str(item_id), Partition.ITEMS)
        removed = await self.storage.delete_tracked_item(category, item_id)
        self._publish_index_size()
        return removed

    def stats(self) -> Dict[str, Dict[str, int]]:
        return self.index.stats()

    def _publish_index_size(self) -> None:
        if not self.metrics:
            return
        for category, counts in self.index.stats().items():
            for partition, size in counts.items():
                self.metrics.set_index_size(category, partition, size)
