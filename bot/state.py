"""Dashboard view state and its transitions.

Every transition takes a state and returns a new one, so the bookkeeping can
be exercised without a running bot.
"""
from typing import List, Optional

from pydantic import BaseModel, Field

from data.models import Granularity, Order, StatsView


class DashboardState(BaseModel):
    shop: str
    show_stats: bool = False
    granularity: Granularity = Granularity.DAILY
    selected_date: Optional[str] = None
    orders: List[Order] = Field(default_factory=list)
    stats: StatsView = Field(default_factory=StatsView)
    degraded: Optional[str] = None

    @property
    def total_sales(self) -> int:
        return self.stats.selected_total


def select_shop(state: DashboardState, shop: str) -> DashboardState:
    if shop == state.shop:
        return state
    # Orders and stats of the old shop must not be shown under the new one
    return state.model_copy(update={
        "shop": shop,
        "orders": [],
        "stats": StatsView(granularity=state.granularity),
        "selected_date": None,
        "degraded": None,
    })


def toggle_view(state: DashboardState) -> DashboardState:
    return state.model_copy(update={"show_stats": not state.show_stats})


def select_granularity(state: DashboardState, granularity: Granularity) -> DashboardState:
    if granularity == state.granularity:
        return state
    # A daily key is meaningless as a monthly selection
    return state.model_copy(update={"granularity": granularity, "selected_date": None})


def select_date(state: DashboardState, period: str) -> DashboardState:
    stats = state.stats.model_copy(update={"selected_period": period})
    return state.model_copy(update={"selected_date": period, "stats": stats})


def apply_orders(state: DashboardState, orders: List[Order]) -> DashboardState:
    return state.model_copy(update={"orders": list(orders), "degraded": None})


def apply_stats(state: DashboardState, view: StatsView) -> DashboardState:
    return state.model_copy(update={
        "stats": view,
        "selected_date": view.selected_period,
        "degraded": None,
    })


def apply_error(state: DashboardState, error: Exception) -> DashboardState:
    return state.model_copy(update={"degraded": f"저장소 연결 오류: {error}"})
