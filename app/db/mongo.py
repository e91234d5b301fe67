import logging
from datetime import timezone

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import DESCENDING

from app.core.config import settings

logger = logging.getLogger(__name__)


class MongoDatabase:
    """MongoDB connection manager."""

    client: AsyncIOMotorClient = None
    db: AsyncIOMotorDatabase = None

mongodb = MongoDatabase()

async def connect_to_mongo():
    """Connect to MongoDB."""
    # Timestamps come back as aware UTC datetimes, like utcnow() produces
    mongodb.client = AsyncIOMotorClient(settings.MONGODB_URI, tz_aware=True, tzinfo=timezone.utc)
    mongodb.db = mongodb.client[settings.MONGODB_DB]

    await create_indexes()
    logger.info("Connected to MongoDB: %s", settings.MONGODB_DB)

async def disconnect_from_mongo():
    """Disconnect from MongoDB."""
    if mongodb.client is not None:
        mongodb.client.close()
        mongodb.client = None
        mongodb.db = None
    logger.info("Disconnected from MongoDB")

async def create_indexes():
    """Create database indexes."""
    # User email unique index
    await mongodb.db["users"].create_index("email", unique=True)

    # Debt list is always read newest first
    await mongodb.db["debts"].create_index([("created_at", DESCENDING)])

def get_db() -> AsyncIOMotorDatabase:
    """Get database instance."""
    return mongodb.db
