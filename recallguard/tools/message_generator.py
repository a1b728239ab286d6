"""
Alert Message Generator

Produces the short human-readable message attached to an alert. Generation
is delegated to a chat model; when it is unavailable, fails, or returns
nothing, a fixed generic message for the category is used instead.
"""

import logging
from typing import Optional, Protocol, Union, runtime_checkable

from recallguard.models.item import FoodItem, ItemCategory, Product, Vehicle
from recallguard.models.recall import FoodRecall, ProductRecall, VehicleRecall
from recallguard.tools.cohere_client import CohereClient
from recallguard.utils.error_handling import ProviderUnavailableError

logger = logging.getLogger(__name__)

AnyItem = Union[FoodItem, Vehicle, Product]
AnyRecall = Union[FoodRecall, VehicleRecall, ProductRecall]

FALLBACK_MESSAGES: dict[ItemCategory, str] = {
    ItemCategory.FOOD: "Potential recall match detected. Review the details.",
    ItemCategory.PRODUCT: "Potential product recall match detected. Review the details.",
    ItemCategory.VEHICLE: "Open safety recall for your vehicle. Contact a dealer about the remedy.",
}


@runtime_checkable
class TextGenerator(Protocol):
    """Generates an alert message; may raise ProviderUnavailableError."""

    async def generate_message(self, recall: AnyRecall, item: AnyItem) -> str:
        ...


def fallback_message(category: str) -> str:
    return FALLBACK_MESSAGES[ItemCategory(category)]


def build_prompt(recall: AnyRecall, item: AnyItem) -> str:
    """Category-specific instruction for a one-sentence alert."""
    if isinstance(recall, FoodRecall):
        subject = recall.product_description or recall.reason or "Unknown product"
        return (
            "Generate a brief one-sentence alert message (under 40 words) for a user about a food recall.\n"
            f"The user has: {item.display_name}\n"
            f"The recall is: {subject}\n"
            "Focus on the key safety concern. Be clear and direct."
        )
    if isinstance(recall, ProductRecall):
        subject = recall.product_name or recall.description or "Unknown product"
        hazard = recall.hazard or "Safety concern"
        return (
            "Generate a brief one-sentence alert message (under 40 words) for a user about a product recall.\n"
            f"The user has: {item.query_text}\n"
            f"The recall is: {subject} - {hazard}\n"
            "Focus on the key safety hazard. Be clear and direct."
        )
    subject = recall.component or "Unknown component"
    consequence = recall.consequence or recall.summary or "Safety concern"
    return (
        "Generate a brief one-sentence alert message (under 40 words) for a vehicle owner about a safety recall.\n"
        f"The user has: {item.query_text}\n"
        f"The recall is: {subject} - {consequence}\n"
        "Focus on the safety risk and the remedy. Be clear and direct."
    )


class CohereMessageGenerator:
    """TextGenerator backed by the Cohere chat endpoint."""

    def __init__(self, client: Optional[CohereClient] = None):
        self._client = client or CohereClient()

    async def generate_message(self, recall: AnyRecall, item: AnyItem) -> str:
        data = await self._client.post(
            "/v1/chat",
            {
                "model": self._client.config.chat_model,
                "message": build_prompt(recall, item),
            },
        )
        text = data.get("text")
        if not isinstance(text, str) or not text.strip():
            raise ProviderUnavailableError("Chat response contained no text")
        return text.strip()


async def generate_alert_message(
    generator: Optional[TextGenerator],
    recall: AnyRecall,
    item: AnyItem,
) -> tuple[str, bool]:
    """
    Generate a message, substituting the category fallback on any failure.

    Returns:
        Tuple (message, used_fallback).
    """
    if generator is None:
        return fallback_message(item.category), True

    try:
        message = await generator.generate_message(recall, item)
    except Exception as e:
        logger.warning(f"Alert message generation failed for item {item.id}: {e}")
        return fallback_message(item.category), True

    if not message or not message.strip():
        return fallback_message(item.category), True
    return message.strip(), False
