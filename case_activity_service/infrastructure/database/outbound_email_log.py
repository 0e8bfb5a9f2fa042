import logging

from motor.motor_asyncio import AsyncIOMotorDatabase

from case_activity_service.app.models import OutboundEmailDB
from case_activity_service.app.service.interfaces.outbound_email_log import AbstractOutboundEmailLog

logger = logging.getLogger(__name__)

OUTBOUND_EMAILS_COLLECTION = "outbound_emails"


class MongoOutboundEmailLog(AbstractOutboundEmailLog):
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    async def record(self, entry: OutboundEmailDB) -> None:
        await self.db[OUTBOUND_EMAILS_COLLECTION].insert_one(entry.model_dump())
        logger.debug(f"Outbound email to {entry.recipient} recorded with outcome {entry.outcome}.")
