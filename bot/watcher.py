"""Live order feed of one shop: new-order detection, alerting, aggregation."""
import asyncio
import logging
from typing import Awaitable, Callable, Iterable, List, Optional, Set

from pymongo.errors import PyMongoError

from data.config import POLL_INTERVAL
from data.models import Order
from data.operations import get_order, get_orders
from bot.aggregator import StatsAggregator

logger = logging.getLogger(__name__)

AlertFn = Callable[[Order, Set[int]], Awaitable[None]]


class WatcherSession:
    """State scoped to one shop subscription; a new watcher starts fresh."""

    def __init__(self, shop: str, alert_recipients: Optional[Iterable[int]] = None):
        self.shop = shop
        self.last_order_id: Optional[str] = None
        # Admins who have interacted with the bot and may receive alerts
        self.alert_recipients: Set[int] = set(alert_recipients or ())
        self.alerted: Set[str] = set()


class OrderFeedWatcher:
    def __init__(
        self,
        shop: str,
        aggregator: StatsAggregator,
        on_orders: Callable[[List[Order]], None],
        alert: Optional[AlertFn] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
        poll_interval: float = POLL_INTERVAL,
        alert_recipients: Optional[Iterable[int]] = None,
    ):
        self.session = WatcherSession(shop, alert_recipients)
        self.aggregator = aggregator
        self.on_orders = on_orders
        self.alert = alert
        self.on_error = on_error
        self.poll_interval = poll_interval
        self._task: Optional[asyncio.Task] = None

    @property
    def shop(self) -> str:
        return self.session.shop

    def add_alert_recipient(self, user_id: int) -> None:
        self.session.alert_recipients.add(user_id)

    async def handle_snapshot(self, orders: List[Order]) -> Optional[Order]:
        """React to one snapshot (newest first) and publish it.

        Returns the order treated as new, if any.
        """
        new_order = None
        if orders and orders[0].id != self.session.last_order_id:
            new_order = await self._handle_new_order(orders)
        self.on_orders(orders)
        return new_order

    async def _handle_new_order(self, orders: List[Order]) -> Optional[Order]:
        newest = orders[0]
        # The snapshot may be a replay; trust only the stored flags
        current = await get_order(newest.id)
        if current is None or (current.stats_processed and not current.stats_pending):
            return None

        # A retried order was already announced; a half-applied one has no new event
        if (
            self.alert
            and self.session.alert_recipients
            and not current.stats_processed
            and current.id not in self.session.alerted
        ):
            self.session.alerted.add(current.id)
            await self.alert(current, set(self.session.alert_recipients))

        previous_id = self.session.last_order_id
        backlog = self._backlog(orders, previous_id)
        self.session.last_order_id = current.id
        try:
            # Orders that arrived between two polls, oldest first
            for older in backlog:
                stored = await get_order(older.id)
                if stored is not None:
                    await self._fold(stored)
            await self._fold(current)
        except Exception:
            self.session.last_order_id = previous_id
            raise
        return current

    async def _fold(self, order: Order) -> None:
        # A shop switch stops the watcher but lets a started aggregation finish
        if order.stats_pending:
            await asyncio.shield(self.aggregator.resume_order(order))
        elif not order.stats_processed:
            await asyncio.shield(self.aggregator.aggregate(order))

    @staticmethod
    def _backlog(orders: List[Order], previous_id: Optional[str]) -> List[Order]:
        backlog = []
        for order in orders[1:]:
            if order.id == previous_id:
                break
            backlog.append(order)
        backlog.reverse()
        return backlog

    async def poll_once(self) -> Optional[Order]:
        orders = await get_orders(self.shop)
        return await self.handle_snapshot(orders)

    async def run(self) -> None:
        """Poll the shop's order list until cancelled."""
        logger.info("Watching orders of %s every %.1fs", self.shop, self.poll_interval)
        while True:
            try:
                await self.poll_once()
            except PyMongoError as e:
                logger.error("Order feed of %s unavailable: %s", self.shop, e)
                if self.on_error:
                    self.on_error(e)
            except Exception as e:
                logger.exception("Unexpected error watching orders of %s", self.shop)
                if self.on_error:
                    self.on_error(e)
            await asyncio.sleep(self.poll_interval)

    def start(self) -> asyncio.Task:
        self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
