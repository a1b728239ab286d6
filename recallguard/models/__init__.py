# Models Package
"""
Pydantic models for typed data contracts.

Items and recalls are tagged unions; the discriminant is set when the record
is created and never re-inferred downstream.
"""

from recallguard.models.item import ItemCategory, FoodItem, Vehicle, Product, TrackedItem
from recallguard.models.recall import (
    FoodRecall,
    VehicleRecall,
    ProductRecall,
    RecallRecord,
    parse_recall,
)
from recallguard.models.alert import Alert, Urgency
from recallguard.models.embedding import (
    VectorEntry,
    Candidate,
    CandidateSource,
    RerankResult,
    EmbeddingMode,
)
from recallguard.models.push import (
    PushSubscription,
    SubscriptionKeys,
    PushPayload,
    DeliveryStatus,
    DeliveryOutcome,
    DispatchReport,
)

__all__ = [
    "ItemCategory",
    "FoodItem",
    "Vehicle",
    "Product",
    "TrackedItem",
    "FoodRecall",
    "VehicleRecall",
    "ProductRecall",
    "RecallRecord",
    "parse_recall",
    "Alert",
    "Urgency",
    "VectorEntry",
    "Candidate",
    "CandidateSource",
    "RerankResult",
    "EmbeddingMode",
    "PushSubscription",
    "SubscriptionKeys",
    "PushPayload",
    "DeliveryStatus",
    "DeliveryOutcome",
    "DispatchReport",
]
