# Read-only lookups over the users, clients and lawyers collections
import logging
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from case_activity_service.app.models import ClientDB, Contact, LawyerDB, UserDB, UserRole
from case_activity_service.app.service.interfaces.user_directory import AbstractUserDirectory

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"
CLIENTS_COLLECTION = "clients"
LAWYERS_COLLECTION = "lawyers"


class MongoUserDirectory(AbstractUserDirectory):
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    async def _contact_for_user(
        self,
        user_id: str,
        profile_id: Optional[str] = None,
        is_available: bool = True
    ) -> Optional[Contact]:
        user_doc = await self.db[USERS_COLLECTION].find_one({"id": user_id})
        if not user_doc:
            logger.warning(f"User {user_id} referenced by profile {profile_id} does not exist.")
            return None
        return Contact.from_user(UserDB(**user_doc), profile_id=profile_id, is_available=is_available)

    async def find_user_by_id(self, user_id: str) -> Optional[Contact]:
        return await self._contact_for_user(user_id)

    async def _client_contact(self, query: dict) -> Optional[Contact]:
        client_doc = await self.db[CLIENTS_COLLECTION].find_one(query)
        if not client_doc:
            return None
        client = ClientDB(**client_doc)
        return await self._contact_for_user(client.user_id, profile_id=client.id)

    async def _lawyer_contact(self, query: dict) -> Optional[Contact]:
        lawyer_doc = await self.db[LAWYERS_COLLECTION].find_one(query)
        if not lawyer_doc:
            return None
        lawyer = LawyerDB(**lawyer_doc)
        return await self._contact_for_user(lawyer.user_id, profile_id=lawyer.id, is_available=lawyer.is_available)

    async def find_client_by_id(self, client_id: str) -> Optional[Contact]:
        return await self._client_contact({"id": client_id})

    async def find_client_by_user_id(self, user_id: str) -> Optional[Contact]:
        return await self._client_contact({"user_id": user_id})

    async def find_lawyer_by_id(self, lawyer_id: str) -> Optional[Contact]:
        return await self._lawyer_contact({"id": lawyer_id})

    async def find_lawyer_by_user_id(self, user_id: str) -> Optional[Contact]:
        return await self._lawyer_contact({"user_id": user_id})

    async def find_active_admins(self) -> List[Contact]:
        cursor = self.db[USERS_COLLECTION].find({"role": UserRole.ADMIN.value, "is_active": True}).sort("created_at", 1)
        admin_docs = await cursor.to_list(length=None)
        return [Contact.from_user(UserDB(**doc)) for doc in admin_docs]

    async def find_active_available_lawyers(self) -> List[Contact]:
        lawyer_docs = await self.db[LAWYERS_COLLECTION].find({"is_available": True}).to_list(length=None)
        lawyers = [LawyerDB(**doc) for doc in lawyer_docs]
        if not lawyers:
            return []
        user_docs = await self.db[USERS_COLLECTION].find(
            {"id": {"$in": [lawyer.user_id for lawyer in lawyers]}, "is_active": True}
        ).to_list(length=None)
        users_by_id = {doc["id"]: UserDB(**doc) for doc in user_docs}
        return [
            Contact.from_user(users_by_id[lawyer.user_id], profile_id=lawyer.id, is_available=True)
            for lawyer in lawyers if lawyer.user_id in users_by_id
        ]
