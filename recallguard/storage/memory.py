"""
In-Memory Storage

Reference RecallStorage implementation used for local runs and tests.
Enforces the alert uniqueness constraint and cascades item deletion to
alerts, the same guarantees a relational backend gives with a UNIQUE index
and ON DELETE CASCADE.
"""

import logging
from typing import Optional, Sequence
from uuid import UUID

from recallguard.models.alert import Alert
from recallguard.models.item import ItemCategory
from recallguard.models.recall import VehicleRecall
from recallguard.storage.base import AnyItem, AnyRecall
from recallguard.utils.error_handling import DuplicateAlertError

logger = logging.getLogger(__name__)


def normalize_key(value: Optional[str]) -> str:
    """Trimmed, case-folded form used for make/model equality."""
    return (value or "").strip().casefold()


class InMemoryStorage:
    """Dict-backed RecallStorage."""

    def __init__(self):
        self._items: dict[ItemCategory, dict[int, AnyItem]] = {c: {} for c in ItemCategory}
        self._recalls: dict[ItemCategory, dict[str, AnyRecall]] = {c: {} for c in ItemCategory}
        self._alerts: dict[UUID, Alert] = {}
        self._alert_keys: dict[tuple[str, int, str], UUID] = {}

    # Tracked items

    async def list_active_tracked_items(self, category: str) -> list[AnyItem]:
        return [i for i in self._items[ItemCategory(category)].values() if i.is_active]

    async def list_tracked_items(self, category: str) -> list[AnyItem]:
        return list(self._items[ItemCategory(category)].values())

    async def get_tracked_item(self, category: str, item_id: int) -> Optional[AnyItem]:
        return self._items[ItemCategory(category)].get(item_id)

    async def add_tracked_item(self, item: AnyItem) -> AnyItem:
        self._items[ItemCategory(item.category)][item.id] = item
        return item

    async def delete_tracked_item(self, category: str, item_id: int) -> bool:
        category = ItemCategory(category)
        if self._items[category].pop(item_id, None) is None:
            return False

        doomed = [
            a.alert_id for a in self._alerts.values()
            if a.category == category and a.item_id == item_id
        ]
        for alert_id in doomed:
            alert = self._alerts.pop(alert_id)
            self._alert_keys.pop(alert.dedup_key, None)

        logger.info(f"Deleted {category.value} item {item_id} and {len(doomed)} alerts")
        return True

    # Recalls

    async def list_recalls(self, category: str) -> list[AnyRecall]:
        return list(self._recalls[ItemCategory(category)].values())

    async def get_recall(self, category: str, recall_id: str) -> Optional[AnyRecall]:
        return self._recalls[ItemCategory(category)].get(recall_id)

    async def upsert_recalls(self, recalls: Sequence[AnyRecall]) -> int:
        new = 0
        for recall in recalls:
            bucket = self._recalls[recall.category]
            if recall.natural_key not in bucket:
                bucket[recall.natural_key] = recall
                new += 1
        return new

    async def find_vehicle_recalls(self, make: str, model: str, year: int) -> list[VehicleRecall]:
        make_key, model_key = normalize_key(make), normalize_key(model)
        return [
            r for r in self._recalls[ItemCategory.VEHICLE].values()
            if normalize_key(r.make) == make_key
            and normalize_key(r.model) == model_key
            and r.year == year
        ]

    # Alerts

    async def alert_exists(self, category: str, item_id: int, recall_id: str) -> bool:
        return (ItemCategory(category).value, item_id, recall_id) in self._alert_keys

    async def create_alert(self, alert: Alert) -> Alert:
        key = alert.dedup_key
        if key in self._alert_keys:
            raise DuplicateAlertError(*key)
        self._alerts[alert.alert_id] = alert
        self._alert_keys[key] = alert.alert_id
        return alert

    async def get_alert(self, alert_id: UUID) -> Optional[Alert]:
        return self._alerts.get(alert_id)

    async def list_alerts(self, category: Optional[str] = None) -> list[Alert]:
        alerts = list(self._alerts.values())
        if category is not None:
            category = ItemCategory(category)
            alerts = [a for a in alerts if a.category == category]
        return sorted(alerts, key=lambda a: a.created_at, reverse=True)

    async def dismiss_alert(self, alert_id: UUID) -> Optional[Alert]:
        alert = self._alerts.get(alert_id)
        return alert.dismiss() if alert else None

    async def resolve_alert(self, alert_id: UUID, resolved: bool = True) -> Optional[Alert]:
        alert = self._alerts.get(alert_id)
        return alert.resolve(resolved) if alert else None
