from scripts.seed_menus import SAMPLE_MENUS, seed_orders
from data.operations import get_order_count, get_orders


async def test_sample_orders_use_menu_prices_and_the_counter():
    assert await seed_orders("김밥천국", 4) == 4

    orders = await get_orders("김밥천국")
    prices = {name["ko"]: price for name, price in SAMPLE_MENUS["김밥천국"]}
    assert sorted(order.order_number for order in orders) == [1, 2, 3, 4]
    assert await get_order_count("김밥천국") == 4
    for order in orders:
        assert all(item.price == prices[item.name] for item in order.items)
        assert order.total_price == sum(item.price * item.quantity for item in order.items)


async def test_shops_without_a_sample_menu_get_no_orders():
    assert await seed_orders("맥도날드", 3) == 0
    assert await get_orders("맥도날드") == []
