import logging
from typing import List, Optional, Dict
from bson import ObjectId
from pydantic import ValidationError
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from .database import db
from .config import RESET_BATCH_SIZE
from .models import Order, Granularity

logger = logging.getLogger(__name__)


def _stringify_mongo_id(doc: dict) -> dict:
    """Convert Mongo ObjectId in _id field to string for Pydantic models."""
    if doc is None:
        return doc
    _id = doc.get("_id")
    if _id is not None and not isinstance(_id, str):
        doc = dict(doc)
        doc["_id"] = str(_id)
    return doc


def _as_object_id(order_id: str):
    """Orders inserted by the driver carry ObjectIds; foreign ids stay strings."""
    return ObjectId(order_id) if ObjectId.is_valid(order_id) else order_id


def _session_kw(session) -> dict:
    return {"session": session} if session is not None else {}


async def _load_orders(cursor) -> List[Order]:
    """Parse a cursor of order documents, skipping ones that do not fit the model."""
    orders = []
    async for doc in cursor:
        doc = _stringify_mongo_id(doc)
        try:
            orders.append(Order(**doc))
        except ValidationError as e:
            logger.warning("Skipping malformed order %s: %s", doc.get("_id"), e)
    return orders


# Order Operations
async def next_order_number(shop: str) -> int:
    """Bump and return the shop's running order counter."""
    doc = await db.shops.find_one_and_update(
        {"_id": shop},
        {"$inc": {"order_count": 1}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    return int(doc["order_count"])

async def get_order_count(shop: str) -> int:
    doc = await db.shops.find_one({"_id": shop})
    return int(doc.get("order_count", 0)) if doc else 0

async def create_order(order: Order) -> str:
    """Create a new order, numbering it from the shop counter when unnumbered."""
    if not order.order_number:
        order.order_number = await next_order_number(order.shop)
    result = await db.orders.insert_one(order.model_dump(mode="python", exclude={"id"}))
    return str(result.inserted_id)

async def get_order(order_id: str, session=None) -> Optional[Order]:
    """Get order by ID, straight from the store"""
    doc = await db.orders.find_one({"_id": _as_object_id(order_id)}, **_session_kw(session))
    doc = _stringify_mongo_id(doc)
    return Order(**doc) if doc else None

async def get_orders(shop: str) -> List[Order]:
    """All orders of a shop, newest first"""
    cursor = db.orders.find({"shop": shop}, sort=[("timestamp", DESCENDING)])
    return await _load_orders(cursor)

async def claim_order_for_stats(order_id: str, session=None) -> Optional[Order]:
    """Atomically flag an order as processed.

    Returns the claimed order, or None when it was already processed (or is
    gone). The flag is set before any accumulator is touched; `stats_pending`
    stays true until every granularity has been applied.
    """
    doc = await db.orders.find_one_and_update(
        {"_id": _as_object_id(order_id), "stats_processed": {"$ne": True}},
        {"$set": {"stats_processed": True, "stats_pending": True, "stats_applied": []}},
        return_document=ReturnDocument.AFTER,
        **_session_kw(session),
    )
    doc = _stringify_mongo_id(doc)
    return Order(**doc) if doc else None

async def mark_stats_applied(order_id: str, granularity: Granularity, finished: bool, session=None) -> bool:
    """Record that one accumulator has received this order's delta."""
    update: Dict[str, dict] = {"$addToSet": {"stats_applied": granularity.value}}
    if finished:
        update["$set"] = {"stats_pending": False}
    result = await db.orders.update_one(
        {"_id": _as_object_id(order_id)},
        update,
        **_session_kw(session),
    )
    return result.modified_count > 0

async def get_pending_stats_orders(shop: Optional[str] = None) -> List[Order]:
    """Orders claimed for aggregation whose accumulators were not all updated."""
    query: Dict[str, object] = {"stats_pending": True}
    if shop:
        query["shop"] = shop
    cursor = db.orders.find(query, sort=[("timestamp", ASCENDING)])
    return await _load_orders(cursor)

async def reset_orders(shop: str, batch_size: int = RESET_BATCH_SIZE) -> int:
    """Delete every order of a shop in batches, then zero its order counter.

    Aggregated stats are left untouched. Safe to re-run after a failure: the
    counter is only reset once the order list is empty.
    """
    deleted = 0
    while True:
        cursor = db.orders.find({"shop": shop}, {"_id": 1}, limit=batch_size)
        ids = [doc["_id"] async for doc in cursor]
        if not ids:
            break
        result = await db.orders.delete_many({"_id": {"$in": ids}})
        deleted += result.deleted_count
        logger.debug("Deleted %d orders of %s", result.deleted_count, shop)
    await db.shops.update_one({"_id": shop}, {"$set": {"order_count": 0}}, upsert=True)
    logger.info("Reset %s: removed %d orders", shop, deleted)
    return deleted


# Stats Operations
async def increment_stat(
    shop: str,
    granularity: Granularity,
    period: str,
    item: str,
    quantity: int,
    total: int,
    session=None,
) -> None:
    """Atomically add a delta to one accumulator entry, creating it if absent."""
    await db.stats.update_one(
        {"shop": shop, "granularity": granularity.value, "period": period, "item": item},
        {"$inc": {"quantity": quantity, "total": total}},
        upsert=True,
        **_session_kw(session),
    )

async def get_stat_entries(shop: str, granularity: Granularity) -> List[dict]:
    """Raw accumulator entries of one shop and granularity."""
    cursor = db.stats.find({"shop": shop, "granularity": granularity.value})
    entries = []
    async for doc in cursor:
        entries.append(_stringify_mongo_id(doc))
    return entries


# Menu Operations
async def get_menu_docs(shop: str) -> List[dict]:
    """Menu documents of a shop, as stored."""
    cursor = db.menus.find({"shop": shop})
    docs = []
    async for doc in cursor:
        docs.append(_stringify_mongo_id(doc))
    return docs

async def add_menu_item(shop: str, name: Dict[str, str], price: int) -> str:
    result = await db.menus.insert_one({"shop": shop, "name": name, "price": price})
    return str(result.inserted_id)
