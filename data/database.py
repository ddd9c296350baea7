import logging
import motor.motor_asyncio
from typing import Optional
from pymongo import ASCENDING, DESCENDING
from .config import MONGODB_URI, MONGODB_DB

logger = logging.getLogger(__name__)


class Database:
    def __init__(self):
        self.client: Optional[motor.motor_asyncio.AsyncIOMotorClient] = None
        self.db: Optional[motor.motor_asyncio.AsyncIOMotorDatabase] = None

    async def connect(self):
        """Connect to MongoDB"""
        try:
            if not MONGODB_URI:
                raise ValueError("MONGODB_URI environment variable not set")

            self.client = motor.motor_asyncio.AsyncIOMotorClient(MONGODB_URI)
            self.db = self.client[MONGODB_DB]

            # Test connection
            await self.client.admin.command('ping')
            logger.info("Connected to MongoDB database %s", MONGODB_DB)

        except Exception as e:
            logger.error("Failed to connect to MongoDB: %s", e)
            raise

    async def disconnect(self):
        """Disconnect from MongoDB"""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    async def ensure_indexes(self):
        """Create the indexes the dashboard queries rely on."""
        await self.orders.create_index([("shop", ASCENDING), ("timestamp", DESCENDING)])
        await self.orders.create_index([("shop", ASCENDING), ("stats_pending", ASCENDING)])
        await self.menus.create_index([("shop", ASCENDING)])
        # One accumulator entry per (shop, granularity, period, item)
        await self.stats.create_index(
            [
                ("shop", ASCENDING),
                ("granularity", ASCENDING),
                ("period", ASCENDING),
                ("item", ASCENDING),
            ],
            unique=True,
        )

    # Collections
    @property
    def orders(self):
        return self.db["orders"]

    @property
    def shops(self):
        return self.db["shops"]

    @property
    def menus(self):
        return self.db["menus"]

    @property
    def stats(self):
        return self.db["stats"]

# Global database instance
db = Database()
