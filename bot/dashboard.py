"""Wires the order watcher, price cache, stats reader and reset to one view state."""
import logging
from typing import Iterable, List, Optional, Set

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError
from pymongo.errors import PyMongoError

from data.config import DEFAULT_SHOP, POLL_INTERVAL, SHOPS, SHOP_ICONS
from data.models import Granularity, Order
from data.operations import reset_orders
from bot import state as transitions
from bot.aggregator import StatsAggregator
from bot.menu_cache import MenuPriceCache
from bot.state import DashboardState
from bot.stats_reader import load_stats
from bot.watcher import OrderFeedWatcher
from utils.helpers import format_won

logger = logging.getLogger(__name__)


class Dashboard:
    def __init__(
        self,
        shops: Iterable[str] = SHOPS,
        default_shop: str = DEFAULT_SHOP,
        bot: Optional[Bot] = None,
        poll_interval: float = POLL_INTERVAL,
    ):
        self.shops: List[str] = list(shops)
        self.state = DashboardState(shop=default_shop)
        self.menu_cache = MenuPriceCache()
        self.aggregator = StatsAggregator(price_lookup=self.menu_cache.snapshot)
        self.bot = bot
        self.poll_interval = poll_interval
        self.watcher: Optional[OrderFeedWatcher] = None
        self._interacted: Set[int] = set()

    async def start(self) -> None:
        await self._watch(self.state.shop)

    async def stop(self) -> None:
        if self.watcher:
            await self.watcher.stop()
            self.watcher = None

    def mark_interacted(self, user_id: int) -> None:
        """Alerts only go to admins who have talked to the bot."""
        self._interacted.add(user_id)
        if self.watcher:
            self.watcher.add_alert_recipient(user_id)

    async def select_shop(self, shop: str) -> DashboardState:
        if shop not in self.shops:
            raise ValueError(f"Unknown shop: {shop}")
        if shop == self.state.shop and self.watcher:
            return self.state
        await self.stop()
        self.state = transitions.select_shop(self.state, shop)
        await self._watch(shop)
        if self.state.show_stats:
            await self.refresh_stats()
        return self.state

    async def toggle_view(self) -> DashboardState:
        self.state = transitions.toggle_view(self.state)
        if self.state.show_stats:
            await self.refresh_stats()
        return self.state

    async def select_granularity(self, granularity: Granularity) -> DashboardState:
        self.state = transitions.select_granularity(self.state, granularity)
        await self.refresh_stats()
        return self.state

    def select_date(self, period: str) -> DashboardState:
        self.state = transitions.select_date(self.state, period)
        return self.state

    async def refresh_stats(self) -> DashboardState:
        try:
            view = await load_stats(self.state.shop, self.state.granularity, self.state.selected_date)
        except PyMongoError as e:
            logger.error("Failed to load stats of %s: %s", self.state.shop, e)
            self.state = transitions.apply_error(self.state, e)
        else:
            self.state = transitions.apply_stats(self.state, view)
        return self.state

    async def reset(self) -> Optional[int]:
        """Clear the selected shop's orders; stats stay as they are."""
        try:
            deleted = await reset_orders(self.state.shop)
        except PyMongoError as e:
            logger.error("Failed to reset orders of %s: %s", self.state.shop, e)
            self.state = transitions.apply_error(self.state, e)
            return None
        self.state = transitions.apply_orders(self.state, [])
        return deleted

    async def _watch(self, shop: str) -> None:
        try:
            await self.menu_cache.load(shop)
        except PyMongoError as e:
            logger.error("Failed to load menu prices of %s: %s", shop, e)
            self.state = transitions.apply_error(self.state, e)
        self.watcher = OrderFeedWatcher(
            shop,
            self.aggregator,
            on_orders=lambda orders: self._on_orders(shop, orders),
            alert=self._alert if self.bot else None,
            on_error=lambda e: self._on_error(shop, e),
            poll_interval=self.poll_interval,
            alert_recipients=self._interacted,
        )
        self.watcher.start()

    def _on_orders(self, shop: str, orders: List[Order]) -> None:
        if shop == self.state.shop:
            self.state = transitions.apply_orders(self.state, orders)

    def _on_error(self, shop: str, error: Exception) -> None:
        if shop == self.state.shop:
            self.state = transitions.apply_error(self.state, error)

    async def _alert(self, order: Order, recipients: Set[int]) -> None:
        icon = SHOP_ICONS.get(order.shop, "🏪")
        text = (
            f"🔔 {icon} {order.shop} 새 주문!\n"
            f"🧾 주문번호: {order.order_number}\n"
            f"💰 총액: {format_won(order.total_price)}"
        )
        for user_id in recipients:
            try:
                await self.bot.send_message(user_id, text)
            except TelegramAPIError as e:
                # Users who blocked or never started the bot cannot be alerted
                logger.debug("Alert to %s refused: %s", user_id, e)
