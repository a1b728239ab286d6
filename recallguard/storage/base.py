"""
Storage Contract - Tracked Items, Recalls and Alerts

The engine never talks to a database directly; it consumes this protocol.
Implementations must enforce at most one alert per
(category, item_id, recall_id) and raise DuplicateAlertError when a create
would violate it.
"""

from typing import Optional, Protocol, Sequence, Union, runtime_checkable
from uuid import UUID

from recallguard.models.alert import Alert
from recallguard.models.item import FoodItem, Product, Vehicle
from recallguard.models.recall import FoodRecall, ProductRecall, VehicleRecall

AnyItem = Union[FoodItem, Vehicle, Product]
AnyRecall = Union[FoodRecall, VehicleRecall, ProductRecall]


@runtime_checkable
class RecallStorage(Protocol):
    """Persistence consumed by the matching engine and the API."""

    async def list_active_tracked_items(self, category: str) -> list[AnyItem]:
        ...

    async def list_tracked_items(self, category: str) -> list[AnyItem]:
        ...

    async def get_tracked_item(self, category: str, item_id: int) -> Optional[AnyItem]:
        ...

    async def add_tracked_item(self, item: AnyItem) -> AnyItem:
        ...

    async def delete_tracked_item(self, category: str, item_id: int) -> bool:
        """Delete the item and every alert referencing it."""
        ...

    async def list_recalls(self, category: str) -> list[AnyRecall]:
        ...

    async def get_recall(self, category: str, recall_id: str) -> Optional[AnyRecall]:
        ...

    async def upsert_recalls(self, recalls: Sequence[AnyRecall]) -> int:
        """Insert recalls not yet stored (by natural key). Returns how many were new."""
        ...

    async def find_vehicle_recalls(self, make: str, model: str, year: int) -> list[VehicleRecall]:
        ...

    async def alert_exists(self, category: str, item_id: int, recall_id: str) -> bool:
        ...

    async def create_alert(self, alert: Alert) -> Alert:
        """Raises DuplicateAlertError on a uniqueness violation."""
        ...

    async def list_alerts(self, category: Optional[str] = None) -> list[Alert]:
        ...

    async def dismiss_alert(self, alert_id: UUID) -> Optional[Alert]:
        ...

    async def resolve_alert(self, alert_id: UUID, resolved: bool = True) -> Optional[Alert]:
        ...
