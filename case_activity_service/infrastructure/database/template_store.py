# Stored overrides of the built-in email templates
import logging
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from case_activity_service.app.models import EmailTemplateDB
from case_activity_service.app.service.interfaces.template_store import AbstractTemplateStore

logger = logging.getLogger(__name__)

EMAIL_TEMPLATES_COLLECTION = "email_templates"


class MongoTemplateStore(AbstractTemplateStore):
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    async def get_by_key(self, template_key: str) -> Optional[EmailTemplateDB]:
        doc = await self.db[EMAIL_TEMPLATES_COLLECTION].find_one({"template_key": template_key})
        return EmailTemplateDB(**doc) if doc else None

    async def list(self) -> List[EmailTemplateDB]:
        docs = await self.db[EMAIL_TEMPLATES_COLLECTION].find().sort("template_key", 1).to_list(length=None)
        return [EmailTemplateDB(**doc) for doc in docs]

    async def upsert(self, template: EmailTemplateDB) -> EmailTemplateDB:
        await self.db[EMAIL_TEMPLATES_COLLECTION].replace_one(
            {"template_key": template.template_key},
            template.model_dump(),
            upsert=True
        )
        logger.info(f"Email template override saved for key: {template.template_key}")
        return template

    async def delete(self, template_key: str) -> bool:
        result = await self.db[EMAIL_TEMPLATES_COLLECTION].delete_one({"template_key": template_key})
        return result.deleted_count > 0
