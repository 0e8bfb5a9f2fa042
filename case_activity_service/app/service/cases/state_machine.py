"""
Case mutations and their audit trail.

Each mutation writes the case change and its CaseEvent inside one repository
transaction, and only after that commits hands a NotificationRequest to the
dispatcher. When the repository runs without transactions (no replica set) a
failed audit append reverts the case write before the error is re-raised, so a
case change is never left behind without its event. Notification problems are
never raised back to the caller.
"""
import datetime
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from case_activity_service.app.models import CaseDB, CaseEventDB, CaseEventType, CaseStatus, CaseType, Contact
from case_activity_service.app.models.case_db import TERMINAL_STATUSES
from case_activity_service.app.observability import tracer
from case_activity_service.app.service.cases.case_numbers import case_number_prefix, format_case_number
from case_activity_service.app.service.exceptions import CaseNumberConflictError, NotFoundError, ValidationError
from case_activity_service.app.service.interfaces.case_repository import (
    AbstractCaseRepository, AbstractCaseEventRepository
)
from case_activity_service.app.service.interfaces.user_directory import AbstractUserDirectory
from case_activity_service.app.service.notifications.dispatcher import NotificationDispatcher
from case_activity_service.app.service.notifications.pipeline import NotificationRequest
from case_activity_service.app.service.notifications.router import ActivityType

logger = logging.getLogger(__name__)

MAX_CASE_NUMBER_ATTEMPTS = 5


class CreateCaseInput(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    client_id: str
    title: str
    description: Optional[str] = None
    case_type: CaseType = CaseType.OTHER
    priority: int = Field(default=3, ge=1, le=5)
    lawyer_id: Optional[str] = None


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


class CaseStateMachine:
    def __init__(
        self,
        cases: AbstractCaseRepository,
        events: AbstractCaseEventRepository,
        directory: AbstractUserDirectory,
        dispatcher: NotificationDispatcher,
        clock: Callable[[], datetime.datetime] = _utcnow
    ):
        self.cases = cases
        self.events = events
        self.directory = directory
        self.dispatcher = dispatcher
        self._now = clock

    async def get_case(self, case_id: str) -> CaseDB:
        case = await self.cases.get(case_id)
        if case is None:
            raise NotFoundError("Case", case_id)
        return case

    async def _require_lawyer(self, lawyer_id: str) -> Contact:
        lawyer = await self.directory.find_lawyer_by_id(lawyer_id)
        if lawyer is None:
            raise NotFoundError("Lawyer", lawyer_id)
        return lawyer

    async def _require_user(self, user_id: str) -> Contact:
        user = await self.directory.find_user_by_id(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    async def _append_or_revert(
        self,
        session: Any,
        revert: Callable[[], Awaitable[Any]],
        case_id: str,
        event_type: CaseEventType,
        description: str,
        actor_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> CaseEventDB:
        try:
            return await self.events.append(
                case_id, event_type, description, actor_id=actor_id, metadata=metadata, session=session
            )
        except Exception as e:
            if session is None:
                # No transaction to roll back: the case write has already landed
                logger.error(f"Failed to append {event_type} event to case {case_id}, reverting the case write: {e}")
                try:
                    await revert()
                except Exception as revert_error:
                    logger.error(f"Could not revert case {case_id} after a failed {event_type} append: {revert_error}", exc_info=True)
            raise

    def _notify(self, request: NotificationRequest) -> None:
        try:
            self.dispatcher.submit(request)
        except Exception as e:
            logger.error(f"Could not enqueue {request.activity} notifications for case {request.case_id}: {e}", exc_info=True)

    async def create(self, case_input: CreateCaseInput, actor_id: Optional[str] = None) -> CaseDB:
        with tracer.start_as_current_span("CaseStateMachine.create") as span:
            if not case_input.title or not case_input.title.strip():
                raise ValidationError("title", "must not be empty")

            client = await self.directory.find_client_by_id(case_input.client_id)
            if client is None:
                raise NotFoundError("Client", case_input.client_id)
            if case_input.lawyer_id:
                await self._require_lawyer(case_input.lawyer_id)

            prefix = case_number_prefix(case_input.case_type)
            for attempt in range(1, MAX_CASE_NUMBER_ATTEMPTS + 1):
                now = self._now()
                sequence = await self.cases.max_sequence(now.year, prefix) + 1
                case = CaseDB(
                    case_number=format_case_number(now.year, prefix, sequence),
                    sequence=sequence,
                    client_id=case_input.client_id,
                    lawyer_id=case_input.lawyer_id,
                    title=case_input.title.strip(),
                    description=case_input.description,
                    case_type=case_input.case_type,
                    priority=case_input.priority,
                    last_activity_at=now,
                    created_at=now,
                    updated_at=now,
                )
                try:
                    async with self.cases.transaction() as session:
                        await self.cases.insert(case, session=session)
                        await self._append_or_revert(
                            session,
                            lambda: self.cases.delete(case.id),
                            case.id,
                            CaseEventType.CASE_CREATED,
                            f"Case created: {case.title}",
                            actor_id=actor_id,
                            metadata={"case_number": case.case_number, "title": case.title},
                        )
                    break
                except CaseNumberConflictError:
                    if attempt == MAX_CASE_NUMBER_ATTEMPTS:
                        logger.error(f"Could not allocate a case number for prefix {prefix} after {attempt} attempts.")
                        raise
                    logger.warning(f"Case number {case.case_number} taken concurrently, retrying allocation.")

            span.set_attribute("case.id", case.id)
            span.set_attribute("case.number", case.case_number)
            logger.info(f"Case {case.case_number} created for client {case_input.client_id}.")

        self._notify(NotificationRequest(
            activity=ActivityType.CASE_CREATED,
            case_id=case.id,
            actor_user_id=actor_id,
        ))
        return await self.cases.get(case.id) or case

    async def update_status(self, case_id: str, new_status: CaseStatus, actor_id: Optional[str] = None) -> CaseDB:
        try:
            new_status = CaseStatus(new_status)
        except ValueError:
            raise ValidationError("status", f"'{new_status}' is not a valid case status")

        with tracer.start_as_current_span("CaseStateMachine.update_status") as span:
            span.set_attribute("case.id", case_id)
            case = await self.get_case(case_id)
            old_status = CaseStatus(case.status)
            if old_status == new_status:
                logger.info(f"Case {case.case_number} already in status {new_status.value}. Nothing to do.")
                return case

            # Any status may follow any other; no transition graph is enforced.
            fields = {"status": new_status.value}
            if new_status in TERMINAL_STATUSES:
                fields["closed_at"] = self._now()

            async with self.cases.transaction() as session:
                updated = await self.cases.update(case_id, fields, session=session)
                if updated is None:
                    raise NotFoundError("Case", case_id)
                await self._append_or_revert(
                    session,
                    lambda: self.cases.update(case_id, {"status": old_status.value, "closed_at": case.closed_at}),
                    case_id,
                    CaseEventType.STATUS_CHANGED,
                    f'Status changed from "{old_status.value}" to "{new_status.value}"',
                    actor_id=actor_id,
                    metadata={"old_status": old_status.value, "new_status": new_status.value},
                )
            logger.info(f"Case {case.case_number} status changed from {old_status.value} to {new_status.value}.")

        self._notify(NotificationRequest(
            activity=ActivityType.STATUS_CHANGED,
            case_id=case_id,
            actor_user_id=actor_id,
            details={"old_status": old_status.value, "new_status": new_status.value},
        ))
        return await self.cases.get(case_id) or updated

    async def assign_lawyer(self, case_id: str, lawyer_id: str, actor_id: Optional[str] = None) -> CaseDB:
        with tracer.start_as_current_span("CaseStateMachine.assign_lawyer") as span:
            span.set_attribute("case.id", case_id)
            case = await self.get_case(case_id)
            lawyer = await self._require_lawyer(lawyer_id)

            async with self.cases.transaction() as session:
                updated = await self.cases.update(case_id, {"lawyer_id": lawyer_id}, session=session)
                if updated is None:
                    raise NotFoundError("Case", case_id)
                await self._append_or_revert(
                    session,
                    lambda: self.cases.update(case_id, {"lawyer_id": case.lawyer_id}),
                    case_id,
                    CaseEventType.LAWYER_ASSIGNED,
                    f"Lawyer {lawyer.name} assigned to case",
                    actor_id=actor_id,
                    metadata={"lawyer_id": lawyer_id},
                )
            logger.info(f"Lawyer {lawyer_id} assigned to case {case.case_number}.")

        self._notify(NotificationRequest(
            activity=ActivityType.LAWYER_ASSIGNED,
            case_id=case_id,
            actor_user_id=actor_id,
        ))
        return await self.cases.get(case_id) or updated

    async def record_document_uploaded(
        self,
        case_id: str,
        uploader_user_id: str,
        document_name: str,
        document_id: Optional[str] = None
    ) -> CaseEventDB:
        if not document_name or not document_name.strip():
            raise ValidationError("document_name", "must not be empty")
        case = await self.get_case(case_id)
        uploader = await self._require_user(uploader_user_id)

        event = await self.events.append(
            case_id,
            CaseEventType.DOCUMENT_UPLOADED,
            f"Document uploaded: {document_name}",
            actor_id=uploader_user_id,
            metadata={"document_id": document_id, "document_name": document_name, "uploader_role": uploader.role},
        )
        logger.info(f"Document '{document_name}' recorded on case {case.case_number} by {uploader.role} {uploader_user_id}.")

        self._notify(NotificationRequest(
            activity=ActivityType.DOCUMENT_UPLOADED,
            case_id=case_id,
            actor_user_id=uploader_user_id,
            actor_role=uploader.role,
            details={"document_name": document_name},
        ))
        return event

    async def record_message_sent(
        self,
        case_id: str,
        sender_user_id: str,
        content: str,
        message_id: Optional[str] = None
    ) -> CaseEventDB:
        if not content or not content.strip():
            raise ValidationError("content", "message content is required")
        case = await self.get_case(case_id)
        sender = await self._require_user(sender_user_id)

        event = await self.events.append(
            case_id,
            CaseEventType.MESSAGE_SENT,
            f"Message sent by {sender.name}",
            actor_id=sender_user_id,
            metadata={"message_id": message_id},
        )
        logger.info(f"Message recorded on case {case.case_number} from user {sender_user_id}.")

        self._notify(NotificationRequest(
            activity=ActivityType.MESSAGE_SENT,
            case_id=case_id,
            actor_user_id=sender_user_id,
            actor_role=sender.role,
            details={"message_content": content.strip()},
        ))
        return event

    async def timeline(self, case_id: str) -> List[CaseEventDB]:
        await self.get_case(case_id)
        return await self.events.list_for_case(case_id)
