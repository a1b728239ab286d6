"""
Tracked Item Models - Consumer-Owned Entities

Items a user registers for recall monitoring. The three kinds form a tagged
union discriminated by `category`; downstream code dispatches on that field
and never re-infers the kind from which attributes happen to be present.

Items are soft-deactivated through `is_active`. Hard deletion cascades to
the alerts referencing the item (see storage).
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field


class ItemCategory(str, Enum):
    """Recall domain an item (and its recalls) belongs to."""
    FOOD = "food"
    VEHICLE = "vehicle"
    PRODUCT = "product"


def _join(*parts: Optional[str | int]) -> str:
    return " ".join(str(p) for p in parts if p not in (None, "")).strip()


class FoodItem(BaseModel):
    """Pantry item monitored against FDA food recalls."""

    category: Literal["food"] = "food"
    id: int = Field(..., description="Storage identifier")
    brand: Optional[str] = Field(None, description="Brand as printed on the package")
    product_name: str = Field(..., min_length=1, description="Product name")
    size: Optional[str] = Field(None, description="Size or quantity")
    purchase_date: Optional[str] = Field(None, description="Purchase date as captured")
    is_active: bool = Field(True, description="Soft-deactivation flag")
    date_added: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        frozen = True

    @property
    def query_text(self) -> str:
        """Identity fields used for retrieval and indexing."""
        return _join(self.brand, self.product_name, self.size)

    @property
    def rerank_query(self) -> str:
        """Shorter query used for reranking (size adds noise there)."""
        return _join(self.brand, self.product_name)

    @property
    def display_name(self) -> str:
        return _join(self.brand, self.product_name)


class Vehicle(BaseModel):
    """Vehicle monitored against NHTSA campaigns."""

    category: Literal["vehicle"] = "vehicle"
    id: int = Field(..., description="Storage identifier")
    make: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1)
    year: int = Field(..., ge=1900, le=2100)
    vin: Optional[str] = Field(None, description="Vehicle identification number")
    nickname: Optional[str] = Field(None)
    is_active: bool = Field(True)
    date_added: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        frozen = True

    @property
    def query_text(self) -> str:
        return _join(self.year, self.make, self.model)

    @property
    def rerank_query(self) -> str:
        return self.query_text

    @property
    def display_name(self) -> str:
        return self.nickname or self.query_text


class Product(BaseModel):
    """Consumer product monitored against CPSC recalls."""

    category: Literal["product"] = "product"
    id: int = Field(..., description="Storage identifier")
    brand: Optional[str] = Field(None)
    product_name: str = Field(..., min_length=1)
    model_number: Optional[str] = Field(None, description="Model or serial number")
    product_category: Optional[str] = Field(None, description="Electronics, Toys, ...")
    purchase_date: Optional[str] = Field(None)
    purchase_location: Optional[str] = Field(None)
    is_active: bool = Field(True)
    date_added: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        frozen = True
        protected_namespaces = ()

    @property
    def query_text(self) -> str:
        return _join(self.brand, self.product_name, self.model_number)

    @property
    def rerank_query(self) -> str:
        return self.query_text

    @property
    def display_name(self) -> str:
        return _join(self.brand, self.product_name)


TrackedItem = Annotated[
    Union[FoodItem, Vehicle, Product],
    Field(discriminator="category"),
]
