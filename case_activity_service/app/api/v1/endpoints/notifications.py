# API Router for a user's in-app notifications
from fastapi import APIRouter, Depends, HTTPException, Query
import logging
from typing import List, Optional

from case_activity_service.app.dependencies.services import get_notification_store
from case_activity_service.app.models import NotificationDB
from case_activity_service.app.service.interfaces.notification_store import AbstractNotificationStore

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/notifications", response_model=List[NotificationDB], tags=["Notifications"])
async def list_notifications(
    user_id: str,
    unread_only: bool = False,
    limit: int = Query(default=50, ge=1, le=200),
    store: AbstractNotificationStore = Depends(get_notification_store)
):
    try:
        return await store.list_for_user(user_id, unread_only=unread_only, limit=limit)
    except Exception as e:
        logger.error(f"Error listing notifications for user {user_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to list notifications")


@router.get("/notifications/unread-count", tags=["Notifications"])
async def get_unread_count(
    user_id: str,
    case_id: Optional[str] = None,
    store: AbstractNotificationStore = Depends(get_notification_store)
):
    try:
        return {"count": await store.unread_count(user_id, case_id=case_id)}
    except Exception as e:
        logger.error(f"Error counting unread notifications for user {user_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to count unread notifications")


@router.post("/notifications/read-all", tags=["Notifications"])
async def mark_all_notifications_read(user_id: str, store: AbstractNotificationStore = Depends(get_notification_store)):
    try:
        return {"updated": await store.mark_all_read(user_id)}
    except Exception as e:
        logger.error(f"Error marking notifications read for user {user_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to mark notifications as read")


@router.post("/notifications/{notification_id}/read", response_model=NotificationDB, tags=["Notifications"])
async def mark_notification_read(
    notification_id: str,
    user_id: str,
    store: AbstractNotificationStore = Depends(get_notification_store)
):
    try:
        notification = await store.mark_read(notification_id, user_id)
    except Exception as e:
        logger.error(f"Error marking notification {notification_id} read: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to mark notification as read")
    if notification is None:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification


@router.post("/cases/{case_id}/notifications/read", tags=["Notifications"])
async def mark_case_notifications_read(
    case_id: str,
    user_id: str,
    store: AbstractNotificationStore = Depends(get_notification_store)
):
    try:
        return {"updated": await store.mark_all_read_for_case(case_id, user_id)}
    except Exception as e:
        logger.error(f"Error marking notifications read for case {case_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to mark case notifications as read")


@router.delete("/notifications/{notification_id}", status_code=204, tags=["Notifications"])
async def delete_notification(
    notification_id: str,
    user_id: str,
    store: AbstractNotificationStore = Depends(get_notification_store)
):
    try:
        deleted = await store.delete(notification_id, user_id)
    except Exception as e:
        logger.error(f"Error deleting notification {notification_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete notification")
    if not deleted:
        raise HTTPException(status_code=404, detail="Notification not found")
