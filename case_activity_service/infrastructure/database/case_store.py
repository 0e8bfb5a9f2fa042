# Case and case-event persistence (the case audit trail)
import datetime
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from case_activity_service.app.models import CaseDB, CaseEventDB, CaseEventType
from case_activity_service.app.models.case_db import INACTIVE_STATUSES
from case_activity_service.app.observability import case_events_appended_counter
from case_activity_service.app.service.exceptions import CaseNumberConflictError
from case_activity_service.app.service.interfaces.case_repository import (
    AbstractCaseRepository, AbstractCaseEventRepository
)

logger = logging.getLogger(__name__)

CASES_COLLECTION = "cases"
CASE_EVENTS_COLLECTION = "case_events"


class MongoCaseRepository(AbstractCaseRepository):
    def __init__(self, db: AsyncIOMotorDatabase, use_transactions: bool = False):
        self.db = db
        self.use_transactions = use_transactions

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Any]:
        if not self.use_transactions:
            yield None
            return
        async with await self.db.client.start_session() as session:
            async with session.start_transaction():
                yield session

    async def get(self, case_id: str) -> Optional[CaseDB]:
        case_doc = await self.db[CASES_COLLECTION].find_one({"id": case_id})
        return CaseDB(**case_doc) if case_doc else None

    async def insert(self, case: CaseDB, session: Any = None) -> CaseDB:
        try:
            await self.db[CASES_COLLECTION].insert_one(case.model_dump(), session=session)
        except DuplicateKeyError:
            logger.warning(f"Case number {case.case_number} already exists.")
            raise CaseNumberConflictError(case.case_number)
        logger.info(f"Case {case.id} inserted with number {case.case_number}.")
        return case

    async def update(self, case_id: str, fields: Dict[str, Any], session: Any = None) -> Optional[CaseDB]:
        update_fields = dict(fields)
        update_fields["updated_at"] = datetime.datetime.now(datetime.UTC)
        updated_doc = await self.db[CASES_COLLECTION].find_one_and_update(
            {"id": case_id},
            {"$set": update_fields},
            return_document=ReturnDocument.AFTER,
            session=session
        )
        if not updated_doc:
            logger.warning(f"Attempted to update non-existent case {case_id}.")
            return None
        return CaseDB(**updated_doc)

    async def delete(self, case_id: str, session: Any = None) -> bool:
        result = await self.db[CASES_COLLECTION].delete_one({"id": case_id}, session=session)
        logger.info(f"Case {case_id} deleted ({result.deleted_count} rows).")
        return result.deleted_count > 0

    async def max_sequence(self, year: int, prefix: str) -> int:
        latest_doc = await self.db[CASES_COLLECTION].find_one(
            {"case_number": {"$regex": f"^{year}-{prefix}-"}},
            sort=[("sequence", -1)]
        )
        return latest_doc.get("sequence", 0) if latest_doc else 0

    async def list_inactive(
        self,
        threshold_days: int,
        throttle_days: int,
        now: datetime.datetime
    ) -> List[CaseDB]:
        activity_cutoff = now - datetime.timedelta(days=threshold_days)
        throttle_cutoff = now - datetime.timedelta(days=throttle_days)
        query = {
            "status": {"$nin": sorted(s.value for s in INACTIVE_STATUSES)},
            "last_activity_at": {"$lt": activity_cutoff},
            "$or": [
                {"last_inactivity_notification": None},
                {"last_inactivity_notification": {"$lt": throttle_cutoff}},
            ],
        }
        cursor = self.db[CASES_COLLECTION].find(query).sort("last_activity_at", 1)
        case_docs = await cursor.to_list(length=None)
        return [CaseDB(**doc) for doc in case_docs]

    async def list_for_lawyer(self, lawyer_id: str) -> List[CaseDB]:
        cursor = self.db[CASES_COLLECTION].find({"lawyer_id": lawyer_id}).sort("last_activity_at", 1)
        case_docs = await cursor.to_list(length=None)
        return [CaseDB(**doc) for doc in case_docs]


class MongoCaseEventRepository(AbstractCaseEventRepository):
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    async def append(
        self,
        case_id: str,
        event_type: CaseEventType,
        description: str,
        actor_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        session: Any = None
    ) -> CaseEventDB:
        event = CaseEventDB(
            case_id=case_id,
            event_type=event_type,
            actor_id=actor_id,
            description=description,
            metadata=metadata or {},
        )
        await self.db[CASE_EVENTS_COLLECTION].insert_one(event.model_dump(), session=session)
        # $max keeps last_activity_at monotonic under concurrent appends
        await self.db[CASES_COLLECTION].update_one(
            {"id": case_id},
            {"$max": {"last_activity_at": event.created_at}},
            session=session
        )
        case_events_appended_counter.add(1, {"event_type": event.event_type})
        logger.debug(f"Event {event.event_type} appended to case {case_id}.")
        return event

    async def list_for_case(self, case_id: str) -> List[CaseEventDB]:
        cursor = self.db[CASE_EVENTS_COLLECTION].find({"case_id": case_id}).sort("created_at", 1)
        event_docs = await cursor.to_list(length=None)
        return [CaseEventDB(**doc) for doc in event_docs]
