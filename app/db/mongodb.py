import logging

from motor.motor_asyncio import AsyncIOMotorClient
from app.core.config import settings

logger = logging.getLogger(__name__)


class MongoDB:
    client: AsyncIOMotorClient = None

mongodb = MongoDB()


# 🔹 Return database object
async def get_database():
    return mongodb.client[settings.MONGO_DB_NAME]


# 🔹 Connect MongoDB (called on startup)
async def connect_to_mongo():
    # tz_aware so reward timestamps come back as UTC-aware datetimes
    mongodb.client = AsyncIOMotorClient(settings.MONGO_URI, tz_aware=True)
    logger.info("Connected to MongoDB at %s", settings.MONGO_URI)


# 🔹 Close connection (shutdown)
async def close_mongo_connection():
    if mongodb.client is not None:
        mongodb.client.close()
        mongodb.client = None
    logger.info("MongoDB connection closed")
