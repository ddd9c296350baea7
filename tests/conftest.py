import os

# Must be set before data.config is imported
os.environ.setdefault("ADMIN_IDS", "123456789")
os.environ.setdefault("SHOPS", "버거킹,김밥천국,스타벅스")

from datetime import datetime

import pytest
from mongomock_motor import AsyncMongoMockClient

from data.database import db
from data.models import Order, OrderItem
from data.operations import add_menu_item, create_order


@pytest.fixture(autouse=True)
def mongo():
    """Point the global database at a fresh in-memory MongoDB."""
    previous = (db.client, db.db)
    db.client = AsyncMongoMockClient()
    db.db = db.client["dashboard_test"]
    yield db
    db.client, db.db = previous


@pytest.fixture
def make_order():
    async def _make(shop="버거킹", items=None, timestamp=None, **fields) -> Order:
        order = Order(
            shop=shop,
            items=[OrderItem(**item) for item in (items or [{"name": "와퍼", "quantity": 1, "price": 7100}])],
            timestamp=timestamp or datetime(2024, 3, 15, 10, 0, 0),
            **fields,
        )
        order.total_price = order.total_price or sum((i.price or 0) * i.quantity for i in order.items)
        order.id = await create_order(order)
        return order
    return _make


@pytest.fixture
async def burger_menu():
    await add_menu_item("버거킹", {"ko": "콜라", "en": "Coke"}, 1500)
    await add_menu_item("버거킹", {"ko": "감자튀김", "en": "French Fries"}, 2100)
