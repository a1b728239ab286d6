"""
Notification Dispatcher - Web Push Fan-Out

Provides:
- SubscriptionRegistry: endpoint-keyed subscriptions with an optional
  persistence hook
- NotificationDispatcher: concurrent fan-out with per-send timeout,
  pruning of subscriptions that fail terminally
- build_alert_payload(): the notification shown for a new alert

Delivery is best effort and at most once per attempt: a failed send is never
retried, a terminal failure (401/404/410) removes the subscription, anything
else is logged and the subscription kept. dispatch() always waits for every
outcome; dispatch_in_background() runs it as a tracked task whose report can
be collected with drain().
"""

import asyncio
import logging
from collections import deque
from typing import Callable, Iterable, Optional, Union

from recallguard.config.settings import PushConfig
from recallguard.models.alert import Alert
from recallguard.models.item import FoodItem, ItemCategory, Product, Vehicle
from recallguard.models.push import (
    DeliveryOutcome,
    DeliveryStatus,
    DispatchReport,
    PushPayload,
    PushSubscription,
)
from recallguard.observability.metrics import MatchingMetrics
from recallguard.tools.push_transport import PushTransport
from recallguard.utils.error_handling import PushDeliveryError

logger = logging.getLogger(__name__)

AnyItem = Union[FoodItem, Vehicle, Product]

NOTIFICATION_TITLES = {
    ItemCategory.FOOD: "Food Recall Alert",
    ItemCategory.PRODUCT: "Product Recall Alert",
    ItemCategory.VEHICLE: "Vehicle Recall Alert",
}

NOTIFICATION_URLS = {
    ItemCategory.FOOD: "/",
    ItemCategory.PRODUCT: "/products",
    ItemCategory.VEHICLE: "/vehicles",
}

MAX_RETAINED_REPORTS = 1000


def build_alert_payload(alert: Alert, item: AnyItem) -> PushPayload:
    """Notification for a newly created alert, tagged so clients collapse repeats."""
    category = ItemCategory(alert.category)
    return PushPayload(
        title=NOTIFICATION_TITLES[category],
        body=f"{item.display_name}: {alert.message}",
        tag=alert.notification_tag,
        url=NOTIFICATION_URLS[category],
        urgency=alert.urgency,
    )


class SubscriptionRegistry:
    """
    Push subscriptions keyed by endpoint.

    Owned by the application and passed to the dispatcher; `on_change` is
    called with the full subscription list after every mutation so a durable
    store can mirror it.
    """

    def __init__(self, on_change: Optional[Callable[[list[PushSubscription]], None]] = None):
        self._subscriptions: dict[str, PushSubscription] = {}
        self._on_change = on_change

    def initialize(self, subscriptions: Iterable[PushSubscription] = ()) -> None:
        """Load persisted subscriptions at process start (does not fire on_change)."""
        self._subscriptions = {s.endpoint: s for s in subscriptions}
        logger.info(f"Subscription registry initialized with {len(self._subscriptions)} subscriptions")

    def upsert(self, subscription: PushSubscription) -> None:
        self._subscriptions[subscription.endpoint] = subscription
        self._changed()

    def remove(self, endpoint: str) -> bool:
        if self._subscriptions.pop(endpoint, None) is None:
            return False
        self._changed()
        return True

    def remove_if_current(self, subscription: PushSubscription) -> bool:
        """Remove only if the endpoint was not re-registered with new keys meanwhile."""
        if self._subscriptions.get(subscription.endpoint) != subscription:
            return False
        return self.remove(subscription.endpoint)

    def get(self, endpoint: str) -> Optional[PushSubscription]:
        return self._subscriptions.get(endpoint)

    def all(self) -> list[PushSubscription]:
        return list(self._subscriptions.values())

    def __len__(self) -> int:
        return len(self._subscriptions)

    def __contains__(self, endpoint: str) -> bool:
        return endpoint in self._subscriptions

    def _changed(self) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(self.all())
        except Exception as e:
            logger.error(f"Subscription persistence hook failed: {e}")


class NotificationDispatcher:
    """
    Service responsible for:
    1. Subscribe/unsubscribe
    2. Concurrent fan-out of one payload to every subscription
    3. Pruning subscriptions that can never succeed again
    4. Tracking background dispatches
    """

    SERVICE_NAME = "NotificationDispatcher"

    def __init__(
        self,
        transport: PushTransport,
        registry: Optional[SubscriptionRegistry] = None,
        config: Optional[PushConfig] = None,
        metrics: Optional[MatchingMetrics] = None,
    ):
        self._transport = transport
        self.registry = registry or SubscriptionRegistry()
        self._config = config or PushConfig()
        self._metrics = metrics
        self._pending: set[asyncio.Task] = set()
        self._completed: deque[DispatchReport] = deque(maxlen=MAX_RETAINED_REPORTS)

    def subscribe(self, subscription: PushSubscription) -> None:
        """Register or replace the subscription for its endpoint."""
        self.registry.upsert(subscription)
        logger.info(f"[{self.SERVICE_NAME}] Subscribed {subscription.endpoint[:60]}")

    def unsubscribe(self, endpoint: str) -> bool:
        """Remove a subscription; no-op when absent."""
        removed = self.registry.remove(endpoint)
        if removed:
            logger.info(f"[{self.SERVICE_NAME}] Unsubscribed {endpoint[:60]}")
        return removed

    async def dispatch(self, payload: PushPayload) -> DispatchReport:
        """
        Send a payload to every registered subscription.

        Returns:
            One outcome per subscription that was registered at call time.
        """
        subscriptions = self.registry.all()
        report = DispatchReport(tag=payload.tag)
        if not subscriptions:
            logger.debug(f"[{self.SERVICE_NAME}] No subscriptions for {payload.tag}")
            return report

        serialized = payload.serialize()
        semaphore = asyncio.Semaphore(self._config.max_concurrency)
        outcomes = await asyncio.gather(
            *(self._send_one(sub, serialized, payload, semaphore) for sub in subscriptions)
        )

        for subscription, outcome in zip(subscriptions, outcomes):
            if outcome.status == DeliveryStatus.TERMINAL_FAILURE:
                self.registry.remove_if_current(subscription)
            if self._metrics:
                self._metrics.record_delivery(outcome.status.value)

        report.outcomes.extend(outcomes)
        logger.info(
            f"[{self.SERVICE_NAME}] Dispatched {payload.tag}: {report.delivered} delivered, "
            f"{len(report.pruned)} pruned, {report.failed - len(report.pruned)} transient failures"
        )
        return report

    async def _send_one(
        self,
        subscription: PushSubscription,
        serialized: str,
        payload: PushPayload,
        semaphore: asyncio.Semaphore,
    ) -> DeliveryOutcome:
        endpoint = subscription.endpoint
        async with semaphore:
            try:
                status_code = await asyncio.wait_for(
                    self._transport.send(subscription, serialized, payload.urgency),
                    timeout=self._config.send_timeout_seconds,
                )
            except asyncio.TimeoutError:
                logger.warning(f"[{self.SERVICE_NAME}] Send to {endpoint[:60]} timed out")
                return DeliveryOutcome(
                    endpoint=endpoint,
                    status=DeliveryStatus.TRANSIENT_FAILURE,
                    error="timeout",
                )
            except PushDeliveryError as e:
                status = (
                    DeliveryStatus.TERMINAL_FAILURE if e.is_terminal
                    else DeliveryStatus.TRANSIENT_FAILURE
                )
                if e.is_terminal:
                    logger.info(
                        f"[{self.SERVICE_NAME}] Subscription {endpoint[:60]} expired ({e.status_code}), removing"
                    )
                else:
                    logger.warning(f"[{self.SERVICE_NAME}] Send to {endpoint[:60]} failed: {e}")
                return DeliveryOutcome(
                    endpoint=endpoint,
                    status=status,
                    status_code=e.status_code,
                    error=str(e),
                )
            except Exception as e:
                logger.error(f"[{self.SERVICE_NAME}] Unexpected send error for {endpoint[:60]}: {e}")
                return DeliveryOutcome(
                    endpoint=endpoint,
                    status=DeliveryStatus.TRANSIENT_FAILURE,
                    error=str(e),
                )

        return DeliveryOutcome(endpoint=endpoint, status=DeliveryStatus.DELIVERED, status_code=status_code)

    def dispatch_in_background(self, payload: PushPayload) -> asyncio.Task:
        """Start dispatch() as a tracked task; collect its report with drain()."""
        task = asyncio.create_task(self.dispatch(payload))
        self._pending.add(task)
        task.add_done_callback(self._on_dispatch_done)
        return task

    def _on_dispatch_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            logger.warning(f"[{self.SERVICE_NAME}] Background dispatch cancelled")
            return
        error = task.exception()
        if error is not None:
            logger.error(f"[{self.SERVICE_NAME}] Background dispatch failed: {error}")
            return
        self._completed.append(task.result())

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> list[DispatchReport]:
        """
        Wait for every background dispatch, including ones started while
        waiting, and return the reports collected since the last drain.
        """
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
            # let done callbacks run before checking again
            await asyncio.sleep(0)

        reports = list(self._completed)
        self._completed.clear()
        return reports
