"""Folding orders into the daily and monthly sales accumulators."""
import logging
from datetime import datetime
from typing import Dict, Iterable, Optional, Tuple

from data.config import USE_TRANSACTIONS
from data.database import db
from data.models import Granularity, Order, OrderItem, StatEntry
from data.operations import (
    claim_order_for_stats,
    get_pending_stats_orders,
    increment_stat,
    mark_stats_applied,
)
from bot.menu_cache import MenuPriceCache
from utils.helpers import to_utc_naive

logger = logging.getLogger(__name__)

GRANULARITIES = (Granularity.DAILY, Granularity.MONTHLY)


def period_keys(timestamp: datetime) -> Dict[Granularity, str]:
    """Daily key is the UTC calendar date, monthly key its YYYY-MM prefix."""
    daily = to_utc_naive(timestamp).date().isoformat()
    return {Granularity.DAILY: daily, Granularity.MONTHLY: daily[:7]}


def merge_stats(target: Dict[str, StatEntry], delta: Dict[str, StatEntry]) -> Dict[str, StatEntry]:
    """Add `delta` into `target` entrywise and return `target`."""
    for name, entry in delta.items():
        current = target.setdefault(name, StatEntry())
        current.quantity += entry.quantity
        current.total += entry.total
    return target


def build_delta(items: Iterable[OrderItem], menu_prices: Optional[Dict[str, int]] = None) -> Dict[str, StatEntry]:
    """Per-item quantity/revenue of one order.

    Price resolution: explicit line price, then menu price by name, then 0.
    Lines sharing a name are summed.
    """
    menu_prices = menu_prices or {}
    delta: Dict[str, StatEntry] = {}
    for item in items:
        price = item.price if item.price is not None else menu_prices.get(item.name, 0)
        line = StatEntry(quantity=item.quantity, total=item.quantity * price)
        merge_stats(delta, {item.name: line})
    return delta


class StatsAggregator:
    """Applies order deltas to the shop's accumulators exactly once per order."""

    def __init__(self, price_lookup=None, use_transactions: bool = USE_TRANSACTIONS):
        # price_lookup: zero-arg callable returning the current name -> price map
        self._price_lookup = price_lookup or (lambda: {})
        self.use_transactions = use_transactions

    async def aggregate(self, order: Order) -> Optional[Dict[str, StatEntry]]:
        """Fold one order into its daily and monthly accumulators.

        Returns the applied delta, or None if the order had already been
        claimed by an earlier pass.
        """
        delta = build_delta(order.items, self._price_lookup())
        keys = period_keys(order.timestamp)

        if self.use_transactions:
            async with await db.client.start_session() as session:
                async with session.start_transaction():
                    claimed = await self._claim_and_apply(order, delta, keys, session=session)
        else:
            claimed = await self._claim_and_apply(order, delta, keys)
        if claimed is None:
            logger.info("Order %s already aggregated, skipping", order.id)
            return None

        logger.info(
            "Aggregated order #%s of %s into %s / %s",
            order.order_number, order.shop, keys[Granularity.DAILY], keys[Granularity.MONTHLY],
        )
        return delta

    async def resume_pending(self, shop: Optional[str] = None) -> int:
        """Finish orders that were claimed but not applied to every accumulator.

        Missing line prices are resolved against the current menu of each
        order's own shop.
        """
        resumed = 0
        shop_prices: Dict[str, Dict[str, int]] = {}
        for order in await get_pending_stats_orders(shop):
            if order.shop not in shop_prices:
                shop_prices[order.shop] = await MenuPriceCache().load(order.shop)
            await self.resume_order(order, shop_prices[order.shop])
            resumed += 1
        return resumed

    async def resume_order(self, order: Order, menu_prices: Optional[Dict[str, int]] = None) -> None:
        """Apply the accumulators a claimed order is still missing."""
        if menu_prices is None:
            menu_prices = await MenuPriceCache().load(order.shop)
        delta = build_delta(order.items, menu_prices)
        await self._apply(order, delta, period_keys(order.timestamp))
        logger.warning("Resumed partial aggregation of order %s (%s)", order.id, order.shop)

    async def _claim_and_apply(
        self,
        order: Order,
        delta: Dict[str, StatEntry],
        keys: Dict[Granularity, str],
        session=None,
    ) -> Optional[Order]:
        claimed = await claim_order_for_stats(order.id, session=session)
        if claimed is not None:
            await self._apply(claimed, delta, keys, session=session)
        return claimed

    async def _apply(
        self,
        order: Order,
        delta: Dict[str, StatEntry],
        keys: Dict[Granularity, str],
        session=None,
    ) -> None:
        todo: Tuple[Granularity, ...] = tuple(g for g in GRANULARITIES if g not in order.stats_applied)
        if not todo:
            await mark_stats_applied(order.id, GRANULARITIES[-1], finished=True, session=session)
            return
        for index, granularity in enumerate(todo):
            for name, entry in delta.items():
                await increment_stat(
                    order.shop, granularity, keys[granularity], name,
                    entry.quantity, entry.total, session=session,
                )
            await mark_stats_applied(order.id, granularity, finished=index == len(todo) - 1, session=session)
