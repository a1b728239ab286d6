"""
Push Models - Web Push Subscriptions and Payloads

The payload shape is what the client service worker expects:
title, body, tag (dedup key), url (path to open on tap), urgency.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from recallguard.models.alert import Urgency


class SubscriptionKeys(BaseModel):
    """Client encryption keys from the browser PushSubscription."""
    p256dh: str = Field(..., min_length=1)
    auth: str = Field(..., min_length=1)


class PushSubscription(BaseModel):
    """Browser push subscription; `endpoint` is the unique key."""

    endpoint: str = Field(..., min_length=1, description="Push service URL, unique per device")
    expiration_time: Optional[int] = Field(None, alias="expirationTime")
    keys: SubscriptionKeys

    class Config:
        frozen = True
        populate_by_name = True


class PushPayload(BaseModel):
    """Notification content fanned out to every subscription."""

    title: str
    body: str
    tag: Optional[str] = Field(None, description="Deduplication tag")
    url: Optional[str] = Field(None, description="Path to open on tap")
    urgency: Optional[Urgency] = Field(None)

    class Config:
        frozen = True

    def serialize(self) -> str:
        return self.model_dump_json(exclude_none=True)


class DeliveryStatus(str, Enum):
    """Outcome of a single subscription send."""
    DELIVERED = "delivered"
    TRANSIENT_FAILURE = "transient_failure"
    TERMINAL_FAILURE = "terminal_failure"


class DeliveryOutcome(BaseModel):
    endpoint: str
    status: DeliveryStatus
    status_code: Optional[int] = None
    error: Optional[str] = None


class DispatchReport(BaseModel):
    """Every outcome of one fan-out; no outcome is dropped."""

    tag: Optional[str] = None
    outcomes: list[DeliveryOutcome] = Field(default_factory=list)

    @property
    def delivered(self) -> int:
        return sum(1 for o in self.outcomes if o.status == DeliveryStatus.DELIVERED)

    @property
    def pruned(self) -> list[str]:
        return [o.endpoint for o in self.outcomes if o.status == DeliveryStatus.TERMINAL_FAILURE]

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.status != DeliveryStatus.DELIVERED)
