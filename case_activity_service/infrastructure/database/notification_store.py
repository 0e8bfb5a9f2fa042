# In-app notification persistence
import datetime
import logging
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from case_activity_service.app.models import NotificationDB, NotificationType
from case_activity_service.app.observability import notifications_created_counter
from case_activity_service.app.service.interfaces.notification_store import AbstractNotificationStore

logger = logging.getLogger(__name__)

NOTIFICATIONS_COLLECTION = "notifications"


class MongoNotificationStore(AbstractNotificationStore):
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    async def create(
        self,
        user_id: str,
        notification_type: NotificationType,
        title: str,
        message: str,
        case_id: Optional[str] = None
    ) -> NotificationDB:
        notification = NotificationDB(
            user_id=user_id,
            type=notification_type,
            title=title,
            message=message,
            case_id=case_id,
        )
        await self.db[NOTIFICATIONS_COLLECTION].insert_one(notification.model_dump())
        notifications_created_counter.add(1, {"notification_type": notification.type})
        logger.info(f"Notification {notification.id} created for user {user_id}: {title}")
        return notification

    async def get(self, notification_id: str) -> Optional[NotificationDB]:
        doc = await self.db[NOTIFICATIONS_COLLECTION].find_one({"id": notification_id})
        return NotificationDB(**doc) if doc else None

    async def list_for_user(self, user_id: str, unread_only: bool = False, limit: int = 50) -> List[NotificationDB]:
        query = {"user_id": user_id}
        if unread_only:
            query["is_read"] = False
        cursor = self.db[NOTIFICATIONS_COLLECTION].find(query).sort("created_at", -1).limit(limit)
        docs = await cursor.to_list(length=limit)
        return [NotificationDB(**doc) for doc in docs]

    async def list_for_case(self, case_id: str, user_id: str) -> List[NotificationDB]:
        cursor = self.db[NOTIFICATIONS_COLLECTION].find({"case_id": case_id, "user_id": user_id}).sort("created_at", -1)
        docs = await cursor.to_list(length=None)
        return [NotificationDB(**doc) for doc in docs]

    async def unread_count(self, user_id: str, case_id: Optional[str] = None) -> int:
        query = {"user_id": user_id, "is_read": False}
        if case_id:
            query["case_id"] = case_id
        return await self.db[NOTIFICATIONS_COLLECTION].count_documents(query)

    async def mark_read(self, notification_id: str, user_id: str) -> Optional[NotificationDB]:
        doc = await self.db[NOTIFICATIONS_COLLECTION].find_one_and_update(
            {"id": notification_id, "user_id": user_id},
            {"$set": {"is_read": True, "read_at": datetime.datetime.now(datetime.UTC)}},
            return_document=ReturnDocument.AFTER
        )
        return NotificationDB(**doc) if doc else None

    async def mark_all_read_for_case(self, case_id: str, user_id: str) -> int:
        result = await self.db[NOTIFICATIONS_COLLECTION].update_many(
            {"case_id": case_id, "user_id": user_id, "is_read": False},
            {"$set": {"is_read": True, "read_at": datetime.datetime.now(datetime.UTC)}}
        )
        return result.modified_count

    async def mark_all_read(self, user_id: str) -> int:
        result = await self.db[NOTIFICATIONS_COLLECTION].update_many(
            {"user_id": user_id, "is_read": False},
            {"$set": {"is_read": True, "read_at": datetime.datetime.now(datetime.UTC)}}
        )
        return result.modified_count

    async def delete(self, notification_id: str, user_id: str) -> bool:
        result = await self.db[NOTIFICATIONS_COLLECTION].delete_one({"id": notification_id, "user_id": user_id})
        return result.deleted_count > 0
