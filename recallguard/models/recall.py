"""
Recall Models - Normalized Upstream Recall Records

Each record comes from exactly one upstream feed (FDA, NHTSA, CPSC) and is
tagged with `kind` at ingestion time. The feed's natural key (`recall_id`,
`campaign_number`, `recall_number`) is the idempotency key for ingestion and
the recall id used by the vector index and by alerts.
"""

from datetime import datetime, timezone
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from recallguard.models.item import ItemCategory


def _join(*parts: Optional[str]) -> str:
    return " ".join(p for p in parts if p).strip()


class FoodRecall(BaseModel):
    """FDA food enforcement record."""

    kind: Literal["food"] = "food"
    recall_id: str = Field(..., min_length=1, description="FDA recall number")
    product_description: str = Field(..., description="Product description from the feed")
    reason: Optional[str] = Field(None, description="Reason for recall")
    classification: Optional[str] = Field(None, description="Class I, Class II or Class III")
    company: Optional[str] = Field(None, description="Recalling firm")
    recall_date: Optional[str] = Field(None)
    date_fetched: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        frozen = True

    @property
    def natural_key(self) -> str:
        return self.recall_id

    @property
    def category(self) -> ItemCategory:
        return ItemCategory.FOOD

    @property
    def document_text(self) -> str:
        """Text embedded into the vector index."""
        return _join(self.product_description, self.company, self.reason)

    @property
    def title(self) -> str:
        return self.product_description

    def index_metadata(self) -> dict:
        return {
            "classification": self.classification,
            "company": self.company,
            "recall_date": self.recall_date,
        }


class VehicleRecall(BaseModel):
    """NHTSA campaign for a make/model/year."""

    kind: Literal["vehicle"] = "vehicle"
    campaign_number: str = Field(..., min_length=1, description="NHTSA campaign number")
    make: Optional[str] = Field(None)
    model: Optional[str] = Field(None)
    year: Optional[int] = Field(None)
    component: Optional[str] = Field(None)
    summary: Optional[str] = Field(None)
    consequence: Optional[str] = Field(None)
    remedy: Optional[str] = Field(None)
    manufacturer: Optional[str] = Field(None)
    recall_date: Optional[str] = Field(None)
    date_fetched: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        frozen = True

    @property
    def natural_key(self) -> str:
        return self.campaign_number

    @property
    def category(self) -> ItemCategory:
        return ItemCategory.VEHICLE

    @property
    def document_text(self) -> str:
        year = str(self.year) if self.year else None
        return _join(year, self.make, self.model, self.component, self.summary)

    @property
    def title(self) -> str:
        return self.summary or self.component or "Vehicle Recall"

    def index_metadata(self) -> dict:
        return {
            "make": self.make,
            "model": self.model,
            "year": self.year,
            "component": self.component,
        }


class ProductRecall(BaseModel):
    """CPSC consumer product recall."""

    kind: Literal["product"] = "product"
    recall_number: str = Field(..., min_length=1, description="CPSC recall number")
    product_name: Optional[str] = Field(None)
    description: Optional[str] = Field(None)
    hazard: Optional[str] = Field(None)
    remedy: Optional[str] = Field(None)
    manufacturer: Optional[str] = Field(None)
    recall_date: Optional[str] = Field(None)
    image_url: Optional[str] = Field(None)
    cpsc_url: Optional[str] = Field(None)
    units_affected: Optional[str] = Field(None)
    date_fetched: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        frozen = True

    @property
    def natural_key(self) -> str:
        return self.recall_number

    @property
    def category(self) -> ItemCategory:
        return ItemCategory.PRODUCT

    @property
    def document_text(self) -> str:
        return _join(self.manufacturer, self.product_name, self.description)

    @property
    def title(self) -> str:
        return self.product_name or "Product Recall"

    def index_metadata(self) -> dict:
        return {
            "recall_number": self.recall_number,
            "manufacturer": self.manufacturer,
            "hazard": self.hazard,
        }


RecallRecord = Annotated[
    Union[FoodRecall, VehicleRecall, ProductRecall],
    Field(discriminator="kind"),
]

_recall_adapter: TypeAdapter = TypeAdapter(RecallRecord)


def parse_recall(data: dict) -> Union[FoodRecall, VehicleRecall, ProductRecall]:
    """Validate a raw dict into the recall variant named by its `kind`."""
    return _recall_adapter.validate_python(data)
