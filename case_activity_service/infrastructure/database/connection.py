from case_activity_service.app.config import settings
import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from case_activity_service.infrastructure.database.case_store import CASES_COLLECTION, CASE_EVENTS_COLLECTION
from case_activity_service.infrastructure.database.notification_store import NOTIFICATIONS_COLLECTION
from case_activity_service.infrastructure.database.outbound_email_log import OUTBOUND_EMAILS_COLLECTION
from case_activity_service.infrastructure.database.template_store import EMAIL_TEMPLATES_COLLECTION
from case_activity_service.infrastructure.database.user_directory import (
    USERS_COLLECTION, CLIENTS_COLLECTION, LAWYERS_COLLECTION
)

logger = logging.getLogger(__name__)

# Global client and db, managed by the application startup/shutdown events
client: Optional[AsyncIOMotorClient] = None
db: Optional[AsyncIOMotorDatabase] = None

def connect_to_mongo():
    global client, db
    if client is not None and db is not None:
        logger.info("MongoDB connection already established.")
        return

    try:
        logger.info(f"Attempting to connect to MongoDB at {settings.MONGO_DETAILS}...")
        client = AsyncIOMotorClient(settings.MONGO_DETAILS, tz_aware=True)
        db = client[settings.DB_NAME]
        logger.info(f"MongoDB client created and database '{settings.DB_NAME}' is set.")
    except Exception as e:
        logger.error(f"Failed to connect to MongoDB: {e}", exc_info=True)
        client = None
        db = None
        raise ConnectionError(f"Failed to connect to MongoDB: {e}")

def close_mongo_connection():
    global client, db
    if client is not None:
        client.close()
        client = None
        db = None
        logger.info("MongoDB connection closed.")

async def get_db():
    if db is None:
        logger.warning("Database not initialized. Attempting to connect via get_db().")
        connect_to_mongo()
    if db is None:
        logger.error("Failed to get database instance in get_db.")
        raise ConnectionError("Database client is not available. Connection might have failed or was not established.")
    yield db

async def ensure_indexes(database: AsyncIOMotorDatabase):
    await database[CASES_COLLECTION].create_index("id", unique=True)
    await database[CASES_COLLECTION].create_index("case_number", unique=True)
    await database[CASES_COLLECTION].create_index([("status", ASCENDING), ("last_activity_at", ASCENDING)])
    await database[CASES_COLLECTION].create_index("lawyer_id")
    await database[CASE_EVENTS_COLLECTION].create_index([("case_id", ASCENDING), ("created_at", ASCENDING)])
    await database[NOTIFICATIONS_COLLECTION].create_index(
        [("user_id", ASCENDING), ("is_read", ASCENDING), ("created_at", DESCENDING)]
    )
    await database[NOTIFICATIONS_COLLECTION].create_index([("case_id", ASCENDING), ("user_id", ASCENDING)])
    await database[EMAIL_TEMPLATES_COLLECTION].create_index("template_key", unique=True)
    await database[OUTBOUND_EMAILS_COLLECTION].create_index([("case_id", ASCENDING), ("created_at", DESCENDING)])
    await database[USERS_COLLECTION].create_index("id", unique=True)
    await database[CLIENTS_COLLECTION].create_index("user_id", unique=True)
    await database[LAWYERS_COLLECTION].create_index("user_id", unique=True)
    logger.info("MongoDB indexes ensured.")
