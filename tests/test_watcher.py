import asyncio
from datetime import datetime

import pytest
from pymongo.errors import PyMongoError

import bot.aggregator as aggregator_module
import bot.watcher as watcher_module
from bot.aggregator import StatsAggregator
from bot.watcher import OrderFeedWatcher
from data.database import db
from data.models import Order
from data.operations import get_order, get_orders


class Recorder:
    def __init__(self):
        self.snapshots = []
        self.alerts = []
        self.errors = []

    def on_orders(self, orders):
        self.snapshots.append([order.id for order in orders])

    async def alert(self, order, recipients):
        self.alerts.append((order.id, recipients))

    def on_error(self, error):
        self.errors.append(error)


def _watcher(recorder, shop="버거킹", recipients=(42,), **kwargs):
    return OrderFeedWatcher(
        shop,
        StatsAggregator(),
        on_orders=recorder.on_orders,
        alert=recorder.alert,
        on_error=recorder.on_error,
        alert_recipients=recipients,
        **kwargs,
    )


async def _daily_total(period="2024-03-15"):
    cursor = db.stats.find({"granularity": "daily", "period": period})
    return sum([doc["total"] async for doc in cursor])


async def test_new_order_alerts_aggregates_and_publishes(make_order):
    order = await make_order()
    recorder = Recorder()
    watcher = _watcher(recorder)

    handled = await watcher.poll_once()

    assert handled.id == order.id
    assert recorder.alerts == [(order.id, {42})]
    assert recorder.snapshots == [[order.id]]
    assert watcher.session.last_order_id == order.id
    assert (await get_order(order.id)).stats_processed is True
    assert await _daily_total() == 7100


async def test_no_alert_before_anyone_interacted(make_order):
    await make_order()
    recorder = Recorder()

    await _watcher(recorder, recipients=()).poll_once()

    assert recorder.alerts == []
    assert await _daily_total() == 7100


async def test_redelivered_snapshot_is_not_a_new_event(make_order):
    await make_order()
    recorder = Recorder()
    watcher = _watcher(recorder)

    await watcher.poll_once()
    assert await watcher.poll_once() is None

    assert len(recorder.alerts) == 1
    assert len(recorder.snapshots) == 2
    assert await _daily_total() == 7100


async def test_restarted_watcher_suppresses_processed_order(make_order):
    order = await make_order()
    await _watcher(Recorder()).poll_once()

    recorder = Recorder()
    watcher = _watcher(recorder)
    assert watcher.session.last_order_id is None
    assert await watcher.poll_once() is None

    assert recorder.alerts == []
    assert recorder.snapshots == [[order.id]]
    assert await _daily_total() == 7100


async def test_empty_snapshot_publishes_empty_list():
    recorder = Recorder()

    assert await _watcher(recorder).poll_once() is None

    assert recorder.snapshots == [[]]


async def test_order_deleted_before_point_read_is_ignored():
    recorder = Recorder()
    ghost = Order(_id="000000000000000000000000", shop="버거킹", timestamp=datetime(2024, 3, 15))

    assert await _watcher(recorder).handle_snapshot([ghost]) is None

    assert recorder.alerts == []
    assert recorder.snapshots == [["000000000000000000000000"]]


async def test_orders_arriving_between_polls_are_all_aggregated(make_order):
    first = await make_order(timestamp=datetime(2024, 3, 15, 9, 0))
    recorder = Recorder()
    watcher = _watcher(recorder)
    await watcher.poll_once()

    await make_order(timestamp=datetime(2024, 3, 15, 9, 5))
    newest = await make_order(timestamp=datetime(2024, 3, 15, 9, 10))
    handled = await watcher.poll_once()

    assert handled.id == newest.id
    assert [alert[0] for alert in recorder.alerts] == [first.id, newest.id]
    assert all(order.stats_processed for order in await get_orders("버거킹"))
    assert await _daily_total() == 3 * 7100


@pytest.mark.parametrize("error", [PyMongoError("server selection timeout"), ValueError("unexpected document")])
async def test_poll_failure_is_reported_and_polling_continues(monkeypatch, error):
    recorder = Recorder()
    calls = []
    real_get_orders = watcher_module.get_orders

    async def flaky_get_orders(shop):
        calls.append(shop)
        if len(calls) == 1:
            raise error
        return await real_get_orders(shop)

    monkeypatch.setattr(watcher_module, "get_orders", flaky_get_orders)
    watcher = _watcher(recorder, poll_interval=0.01)

    watcher.start()
    await asyncio.sleep(0.05)
    await watcher.stop()

    assert recorder.errors == [error]
    assert len(calls) >= 2
    assert recorder.snapshots[-1] == []


async def test_failed_aggregation_is_retried_on_next_poll(make_order, monkeypatch):
    order = await make_order()
    recorder = Recorder()
    watcher = _watcher(recorder)
    real_aggregate = watcher_module.StatsAggregator.aggregate
    attempts = []

    async def failing_once(self, o):
        attempts.append(o.id)
        if len(attempts) == 1:
            raise PyMongoError("write failed")
        return await real_aggregate(self, o)

    monkeypatch.setattr(watcher_module.StatsAggregator, "aggregate", failing_once)

    with pytest.raises(PyMongoError):
        await watcher.poll_once()
    assert watcher.session.last_order_id is None

    await watcher.poll_once()
    assert attempts == [order.id, order.id]
    assert await _daily_total() == 7100
    assert len(recorder.alerts) == 1


async def test_failure_after_claim_is_finished_on_a_later_poll(make_order, monkeypatch):
    order = await make_order()
    recorder = Recorder()
    watcher = _watcher(recorder)
    real_increment = aggregator_module.increment_stat
    calls = []

    async def failing_once(*args, **kwargs):
        calls.append(args)
        if len(calls) == 1:
            raise PyMongoError("write failed")
        await real_increment(*args, **kwargs)

    monkeypatch.setattr(aggregator_module, "increment_stat", failing_once)

    with pytest.raises(PyMongoError):
        await watcher.poll_once()
    stored = await get_order(order.id)
    assert stored.stats_processed is True
    assert stored.stats_pending is True

    assert (await watcher.poll_once()).id == order.id
    assert await watcher.poll_once() is None

    assert (await get_order(order.id)).stats_pending is False
    assert await _daily_total() == 7100
    assert len(recorder.alerts) == 1


async def test_fractional_money_is_rounded_and_watching_continues():
    await db.orders.insert_one({
        "shop": "버거킹",
        "order_number": 1,
        "items": [{"name": "콜라", "quantity": 1, "price": 1500.5}],
        "total_price": 1500.5,
        "timestamp": datetime(2024, 3, 15, 10, 0),
    })
    recorder = Recorder()
    watcher = _watcher(recorder, poll_interval=0.01)

    task = watcher.start()
    await asyncio.sleep(0.05)
    assert not task.done()
    await watcher.stop()

    assert recorder.errors == []
    assert len(recorder.alerts) == 1
    assert (await get_orders("버거킹"))[0].total_price == 1501
    assert await _daily_total() == 1501


async def test_malformed_order_is_left_out_of_the_snapshot(make_order):
    good = await make_order()
    await db.orders.insert_one({"shop": "버거킹", "items": "not a list", "timestamp": datetime(2024, 3, 15, 11, 0)})
    recorder = Recorder()

    handled = await _watcher(recorder).poll_once()

    assert handled.id == good.id
    assert recorder.snapshots == [[good.id]]
