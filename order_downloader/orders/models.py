"""
Payload models for the PC Express order API.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class OrderSummary(BaseModel):
    """One entry of the order history listing."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    total: Decimal
    placed_at: datetime = Field(alias="placed")
    store: str


class OrderHistoryResult(BaseModel):
    """Response of the historical-orders listing."""
    model_config = ConfigDict(populate_by_name=True)

    offline_count: int = Field(default=0, alias="offlineOrdersCount")
    online_count: int = Field(default=0, alias="onlineOrdersCount")
    items: List[OrderSummary] = Field(default_factory=list, alias="orderHistory")

    @field_validator("items", mode="before")
    @classmethod
    def _null_history_is_empty(cls, value):
        return [] if value is None else value


@dataclass
class ProductFetch:
    """Outcome of a product detail request. A miss is not an error."""
    product_id: str
    body: Optional[str]
    success: bool
    status_code: int
