#!/usr/bin/env python3
"""
Seed MongoDB with the shop counters, sample menus and indexes
(plus random sample orders with --orders N)
Run this after setting up the MongoDB connection
"""

import argparse
import asyncio
import random
import sys
import os
from datetime import datetime, timedelta
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from data.database import db
from data.config import SHOPS
from data.models import Order, OrderItem
from data.operations import add_menu_item, create_order

SAMPLE_MENUS = {
    "버거킹": [
        ({"ko": "와퍼", "en": "Whopper"}, 7100),
        ({"ko": "치즈와퍼", "en": "Cheese Whopper"}, 7700),
        ({"ko": "감자튀김", "en": "French Fries"}, 2100),
        ({"ko": "콜라", "en": "Coke"}, 1500),
    ],
    "김밥천국": [
        ({"ko": "원조김밥", "en": "Gimbap"}, 3000),
        ({"ko": "참치김밥", "en": "Tuna Gimbap"}, 4000),
        ({"ko": "라면", "en": "Ramyeon"}, 4500),
        ({"ko": "떡볶이", "en": "Tteokbokki"}, 4500),
    ],
    "스타벅스": [
        ({"ko": "아메리카노", "en": "Americano"}, 4500),
        ({"ko": "카페 라떼", "en": "Caffe Latte"}, 5000),
        ({"ko": "자바 칩 프라푸치노", "en": "Java Chip Frappuccino"}, 6300),
    ],
}

async def seed_orders(shop, count):
    """Write `count` random orders of the past month, numbered from the shop counter"""
    menu = SAMPLE_MENUS.get(shop, [])
    if not menu:
        return 0
    now = datetime.utcnow()
    for _ in range(count):
        picks = random.sample(menu, k=random.randint(1, min(3, len(menu))))
        items = [OrderItem(name=name["ko"], quantity=random.randint(1, 3), price=price) for name, price in picks]
        await create_order(Order(
            shop=shop,
            items=items,
            total_price=sum(item.price * item.quantity for item in items),
            timestamp=now - timedelta(minutes=random.randint(0, 30 * 24 * 60)),
        ))
    return count

async def seed(orders_per_shop=0):
    """Seed shops, menus and optionally sample orders"""
    print("🔄 Starting seed...")

    await db.connect()

    try:
        await db.ensure_indexes()

        menu_count = 0
        for shop in SHOPS:
            await db.shops.update_one(
                {"_id": shop},
                {"$setOnInsert": {"order_count": 0}},
                upsert=True,
            )
            if await db.menus.count_documents({"shop": shop}, limit=1):
                print(f"⏭ Menu of {shop} already present, skipping")
                continue
            for name, price in SAMPLE_MENUS.get(shop, []):
                await add_menu_item(shop, name, price)
                menu_count += 1

        order_count = 0
        if orders_per_shop:
            for shop in SHOPS:
                order_count += await seed_orders(shop, orders_per_shop)

        print("✅ Seed completed successfully!")
        print(f"🏪 {len(SHOPS)} shops")
        print(f"🍽️ Created {menu_count} menu items")
        if order_count:
            print(f"🧾 Created {order_count} sample orders")

    except Exception as e:
        print(f"❌ Seed failed: {e}")
        raise
    finally:
        await db.disconnect()

def parse_args():
    parser = argparse.ArgumentParser(description="Seed shop counters, menus and sample orders")
    parser.add_argument("--orders", type=int, default=0, help="Sample orders to create per shop")
    return parser.parse_args()

if __name__ == "__main__":
    args = parse_args()
    asyncio.run(seed(args.orders))
