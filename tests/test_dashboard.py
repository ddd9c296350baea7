import asyncio

import pytest
from aiogram.exceptions import TelegramForbiddenError

from bot.dashboard import Dashboard
from data.models import Granularity
from data.operations import get_order_count

SHOPS = ["버거킹", "스타벅스"]


class FakeBot:
    def __init__(self, blocked=()):
        self.sent = []
        self.blocked = set(blocked)

    async def send_message(self, chat_id, text):
        if chat_id in self.blocked:
            raise TelegramForbiddenError(method=None, message="bot was blocked by the user")
        self.sent.append((chat_id, text))


@pytest.fixture
async def dashboard():
    board = Dashboard(shops=SHOPS, default_shop="버거킹", bot=FakeBot(blocked={7}), poll_interval=60)
    yield board
    await board.stop()


async def _settle():
    await asyncio.sleep(0.01)


async def test_start_publishes_orders_and_alerts_interacted_admins(dashboard, make_order, burger_menu):
    dashboard.mark_interacted(1)
    dashboard.mark_interacted(7)
    order = await make_order(items=[{"name": "콜라", "quantity": 2}])

    await dashboard.start()
    await _settle()

    assert [o.id for o in dashboard.state.orders] == [order.id]
    assert [chat_id for chat_id, _ in dashboard.bot.sent] == [1]
    assert "새 주문" in dashboard.bot.sent[0][1]

    await dashboard.toggle_view()
    assert dashboard.state.show_stats is True
    assert dashboard.state.stats.selected_period == "2024-03-15"
    assert dashboard.state.total_sales == 3000


async def test_switching_shop_restarts_watcher_and_reloads_prices(dashboard, burger_menu, make_order):
    await make_order(shop="스타벅스", items=[{"name": "아메리카노", "quantity": 1, "price": 4500}])
    await dashboard.start()
    await _settle()
    assert dashboard.menu_cache.snapshot() == {"콜라": 1500, "감자튀김": 2100}

    await dashboard.select_shop("스타벅스")
    await _settle()

    assert dashboard.watcher.shop == "스타벅스"
    assert dashboard.watcher.session.last_order_id == dashboard.state.orders[0].id
    assert dashboard.menu_cache.snapshot() == {}
    assert dashboard.state.orders[0].shop == "스타벅스"

    with pytest.raises(ValueError):
        await dashboard.select_shop("맥도날드")


async def test_granularity_switch_selects_latest_period(dashboard, make_order):
    await make_order()
    await dashboard.start()
    await _settle()
    await dashboard.toggle_view()

    state = await dashboard.select_granularity(Granularity.MONTHLY)

    assert state.selected_date == "2024-03"
    assert state.total_sales == 7100


async def test_reset_clears_visible_orders(dashboard, make_order):
    await make_order()
    await dashboard.start()
    await _settle()

    assert await dashboard.reset() == 1

    assert dashboard.state.orders == []
    assert await get_order_count("버거킹") == 0
