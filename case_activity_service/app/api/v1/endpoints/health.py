# API Router for Health Checks
from fastapi import APIRouter, Depends, Request
import logging

from case_activity_service.infrastructure.database.connection import get_db
from case_activity_service.app.config import settings
from motor.motor_asyncio import AsyncIOMotorDatabase

logger = logging.getLogger(__name__)
router = APIRouter()

@router.get("/health", tags=["Monitoring"])
async def health_check(request: Request, db: AsyncIOMotorDatabase = Depends(get_db)):
    mongodb_status = "connected"
    try:
        await db.command('ping')
    except Exception as e:
        logger.error(f"MongoDB health check ping failed: {e}")
        mongodb_status = "disconnected"

    services = getattr(request.app.state, "services", None)
    dispatcher_status = {"running": False, "queue_depth": 0}
    if services is not None:
        dispatcher_status = {
            "running": services.dispatcher.is_running,
            "queue_depth": services.dispatcher.queue_depth,
        }
    return {
        "status": "ok",
        "components": {"mongodb": mongodb_status, "notification_dispatcher": dispatcher_status},
        "service_name": settings.SERVICE_NAME_API,
    }
