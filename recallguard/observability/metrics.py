"""
Observability Metrics - Prometheus Counters for Matching and Delivery

Each MatchingMetrics instance owns its CollectorRegistry, so several engines
(or test cases) can coexist in one process without duplicate-timeseries
errors. The API exposes the registry at /metrics.
"""

import logging
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest

logger = logging.getLogger(__name__)


class MatchingMetrics:
    """Prometheus metrics for the matching engine.

    Responsibilities:
    1. Count matched items per category and outcome
    2. Count created alerts per category and urgency
    3. Count provider fallbacks per stage
    4. Count push delivery outcomes
    5. Track matching pass latency and index size
    """

    def __init__(self, namespace: str = "recallguard", registry: Optional[CollectorRegistry] = None):
        self.namespace = namespace
        self.registry = registry or CollectorRegistry()

        self.items_matched = Counter(
            f"{namespace}_items_matched_total",
            "Tracked items processed by a matching pass",
            ["category", "status"],
            registry=self.registry,
        )
        self.alerts_created = Counter(
            f"{namespace}_alerts_created_total",
            "Alerts persisted by the decision engine",
            ["category", "urgency"],
            registry=self.registry,
        )
        self.provider_fallbacks = Counter(
            f"{namespace}_provider_fallbacks_total",
            "Times a provider was unavailable and a fallback path was used",
            ["stage"],
            registry=self.registry,
        )
        self.push_deliveries = Counter(
            f"{namespace}_push_deliveries_total",
            "Push sends by outcome",
            ["outcome"],
            registry=self.registry,
        )
        self.pass_duration = Histogram(
            f"{namespace}_matching_pass_duration_seconds",
            "Duration of a full matching pass",
            buckets=(0.1, 0.5, 1.0, 5.0, 15.0, 60.0, 300.0),
            registry=self.registry,
        )
        self.index_entries = Gauge(
            f"{namespace}_vector_index_entries",
            "Entries held by the vector index",
            ["category", "partition"],
            registry=self.registry,
        )

    def record_item(self, category: str, status: str) -> None:
        self.items_matched.labels(category=category, status=status).inc()

    def record_alert(self, category: str, urgency: str) -> None:
        self.alerts_created.labels(category=category, urgency=urgency).inc()

    def record_fallback(self, stage: str) -> None:
        """Record a degraded path (embed, rerank, generate)."""
        self.provider_fallbacks.labels(stage=stage).inc()
        logger.debug(f"Provider fallback used: stage={stage}")

    def record_delivery(self, outcome: str) -> None:
        self.push_deliveries.labels(outcome=outcome).inc()

    def observe_pass(self, duration_seconds: float) -> None:
        self.pass_duration.observe(duration_seconds)
        logger.info(f"Matching pass recorded: duration={duration_seconds:.3f}s")

    def set_index_size(self, category: str, partition: str, size: int) -> None:
        self.index_entries.labels(category=category, partition=partition).set(size)

    def render(self) -> bytes:
        """Exposition-format snapshot of this registry."""
        return generate_latest(self.registry)

    def value(self, name: str, labels: Optional[dict] = None) -> float:
        """Current sample value, 0.0 when absent."""
        sample = self.registry.get_sample_value(name, labels or {})
        return sample if sample is not None else 0.0
