from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Dict, List, Optional
from datetime import datetime
from enum import Enum

from utils.helpers import to_minor_units


class Granularity(str, Enum):
    DAILY = "daily"
    MONTHLY = "monthly"


class OrderItem(BaseModel):
    name: str
    quantity: int = 0
    price: Optional[int] = None  # falls back to the menu price when missing

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity_default(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("price", mode="before")
    @classmethod
    def _price_minor_units(cls, value: Any) -> Any:
        return to_minor_units(value)


class Order(BaseModel):
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    id: Optional[str] = Field(default=None, alias="_id")
    shop: str
    order_number: int = 0
    items: List[OrderItem] = Field(default_factory=list)
    total_price: int = 0
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    # Set once the order has been folded into the accumulators
    stats_processed: bool = False
    # Claimed but not every accumulator has been incremented yet
    stats_pending: bool = False
    stats_applied: List[Granularity] = Field(default_factory=list)

    @field_validator("total_price", mode="before")
    @classmethod
    def _total_minor_units(cls, value: Any) -> Any:
        return 0 if value is None else to_minor_units(value)


class StatEntry(BaseModel):
    quantity: int = 0
    total: int = 0


class PeriodTotal(BaseModel):
    period: str
    total: int


class StatsView(BaseModel):
    """Chart series plus per-period item breakdown for one shop/granularity."""

    granularity: Granularity = Granularity.DAILY
    series: List[PeriodTotal] = Field(default_factory=list)
    menus: Dict[str, Dict[str, StatEntry]] = Field(default_factory=dict)
    selected_period: Optional[str] = None

    @property
    def selected_total(self) -> int:
        """Sales of the selected period only, not the grand total."""
        if not self.selected_period or self.selected_period not in self.menus:
            return 0
        return sum(entry.total for entry in self.menus[self.selected_period].values())
