from typing import Dict, Optional

from data.models import Granularity, PeriodTotal, StatEntry, StatsView
from data.operations import get_stat_entries


async def load_stats(shop: str, granularity: Granularity, selected_period: Optional[str] = None) -> StatsView:
    """Rebuild the chart series and per-period breakdown from the accumulators.

    Periods sort lexicographically, which is chronological for both
    YYYY-MM-DD and YYYY-MM keys. Without a selection the latest period is
    selected.
    """
    menus: Dict[str, Dict[str, StatEntry]] = {}
    for doc in await get_stat_entries(shop, granularity):
        period_items = menus.setdefault(doc["period"], {})
        period_items[doc["item"]] = StatEntry(
            quantity=int(doc.get("quantity", 0)),
            total=int(doc.get("total", 0)),
        )

    series = [
        PeriodTotal(period=period, total=sum(entry.total for entry in items.values()))
        for period, items in menus.items()
    ]
    series.sort(key=lambda point: point.period)

    if not selected_period and series:
        selected_period = series[-1].period

    return StatsView(
        granularity=granularity,
        series=series,
        menus=menus,
        selected_period=selected_period,
    )
