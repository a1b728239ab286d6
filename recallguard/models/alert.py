"""
Alert Model - Item/Recall Match Decision

Links a tracked item to a recall with the rerank relevance score, an urgency
classification and a human-readable message. At most one alert exists per
(category, item_id, recall_id); the storage layer enforces that constraint.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from recallguard.models.item import ItemCategory


class Urgency(str, Enum):
    """Severity driving notification prominence."""
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class Alert(BaseModel):
    """
    Persisted match between a tracked item and a recall.

    `is_resolved` is category specific: "fixed" for vehicles,
    "discarded" for products. Food alerts are never resolved, only dismissed.
    """

    alert_id: UUID = Field(default_factory=uuid4, description="Unique alert identifier")
    category: ItemCategory = Field(..., description="Category shared by item and recall")
    item_id: int = Field(..., description="Tracked item identifier")
    recall_id: str = Field(..., description="Recall natural key")
    score: float = Field(..., ge=0.0, le=1.0, description="Rerank relevance score")
    urgency: Urgency = Field(..., description="HIGH, MEDIUM or LOW")
    message: Optional[str] = Field(None, description="Human-readable alert message")
    is_dismissed: bool = Field(False)
    is_resolved: bool = Field(False)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        frozen = False  # Mutable for dismiss/resolve

    @property
    def dedup_key(self) -> tuple[str, int, str]:
        return (ItemCategory(self.category).value, self.item_id, self.recall_id)

    @property
    def notification_tag(self) -> str:
        """Push tag; clients collapse notifications sharing a tag."""
        return f"{ItemCategory(self.category).value}-alert-{self.item_id}-{self.recall_id}"

    def dismiss(self) -> "Alert":
        self.is_dismissed = True
        return self

    def resolve(self, resolved: bool = True) -> "Alert":
        self.is_resolved = resolved
        return self
