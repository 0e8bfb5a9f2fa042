# In-memory implementations of the repository and transport interfaces used by service tests
import datetime
import uuid
from contextlib import asynccontextmanager
from types import SimpleNamespace
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock

from case_activity_service.app.models import (
    CaseDB, CaseEventDB, Contact, EmailTemplateDB, NotificationDB, OutboundEmailDB, UserRole
)
from case_activity_service.app.service.cases.state_machine import CaseStateMachine
from case_activity_service.app.service.delivery.engine import DeliveryEngine, RetryPolicy
from case_activity_service.app.service.delivery.template_service import TemplateService
from case_activity_service.app.service.exceptions import CaseNumberConflictError
from case_activity_service.app.service.interfaces.case_repository import (
    AbstractCaseRepository, AbstractCaseEventRepository
)
from case_activity_service.app.service.interfaces.mail_transport import MailSendResult, MailTransport
from case_activity_service.app.service.interfaces.notification_store import AbstractNotificationStore
from case_activity_service.app.service.interfaces.outbound_email_log import AbstractOutboundEmailLog
from case_activity_service.app.service.interfaces.template_store import AbstractTemplateStore
from case_activity_service.app.service.interfaces.user_directory import AbstractUserDirectory
from case_activity_service.app.service.jobs.digest_builder import DigestBuilder
from case_activity_service.app.service.jobs.inactivity_scanner import InactivityScanner, is_inactivity_candidate
from case_activity_service.app.service.notifications.dispatcher import NotificationDispatcher
from case_activity_service.app.service.notifications.pipeline import NotificationPipeline

NOW = datetime.datetime(2025, 1, 6, 14, 0, tzinfo=datetime.UTC)
FRONTEND_URL = "https://portal.example.com"
FIRM_NAME = "Test & Partners"


class Clock:
    """Settable clock shared by the fakes and the services under test."""
    def __init__(self, now: datetime.datetime = NOW):
        self.now = now

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + datetime.timedelta(**kwargs)


class InMemoryCaseRepository(AbstractCaseRepository):
    def __init__(self, clock: Clock):
        self.clock = clock
        self.cases: Dict[str, CaseDB] = {}
        self.conflicts_to_raise = 0
        self.transactions = 0

    @asynccontextmanager
    async def transaction(self):
        self.transactions += 1
        yield None

    def seed(self, **fields) -> CaseDB:
        defaults = dict(
            case_number=f"2025-OT-{len(self.cases) + 1:04d}",
            sequence=len(self.cases) + 1,
            title="Seeded case",
            case_type="other",
            last_activity_at=self.clock(),
            created_at=self.clock() - datetime.timedelta(days=60),
        )
        defaults.update(fields)
        case = CaseDB(**defaults)
        self.cases[case.id] = case
        return case

    async def get(self, case_id: str) -> Optional[CaseDB]:
        case = self.cases.get(case_id)
        return case.model_copy() if case else None

    async def insert(self, case: CaseDB, session: Any = None) -> CaseDB:
        if self.conflicts_to_raise > 0:
            self.conflicts_to_raise -= 1
            raise CaseNumberConflictError(case.case_number)
        if any(existing.case_number == case.case_number for existing in self.cases.values()):
            raise CaseNumberConflictError(case.case_number)
        self.cases[case.id] = case.model_copy()
        return case

    async def update(self, case_id: str, fields: Dict[str, Any], session: Any = None) -> Optional[CaseDB]:
        case = self.cases.get(case_id)
        if case is None:
            return None
        updated = case.model_copy(update={**fields, "updated_at": self.clock()})
        self.cases[case_id] = updated
        return updated.model_copy()

    async def delete(self, case_id: str, session: Any = None) -> bool:
        return self.cases.pop(case_id, None) is not None

    async def max_sequence(self, year: int, prefix: str) -> int:
        sequences = [c.sequence for c in self.cases.values() if c.case_number.startswith(f"{year}-{prefix}-")]
        return max(sequences, default=0)

    async def list_inactive(self, threshold_days: int, throttle_days: int, now: datetime.datetime) -> List[CaseDB]:
        selected = [c for c in self.cases.values() if is_inactivity_candidate(c, threshold_days, throttle_days, now)]
        return sorted((c.model_copy() for c in selected), key=lambda c: c.last_activity_at)

    async def list_for_lawyer(self, lawyer_id: str) -> List[CaseDB]:
        return [c.model_copy() for c in self.cases.values() if c.lawyer_id == lawyer_id]


class InMemoryCaseEventRepository(AbstractCaseEventRepository):
    def __init__(self, cases: InMemoryCaseRepository, clock: Clock):
        self.cases = cases
        self.clock = clock
        self.events: List[CaseEventDB] = []

    async def append(self, case_id, event_type, description, actor_id=None, metadata=None, session=None) -> CaseEventDB:
        event = CaseEventDB(
            case_id=case_id,
            event_type=event_type,
            actor_id=actor_id,
            description=description,
            metadata=metadata or {},
            created_at=self.clock(),
        )
        self.events.append(event)
        case = self.cases.cases.get(case_id)
        if case is not None and event.created_at > case.last_activity_at:
            self.cases.cases[case_id] = case.model_copy(update={"last_activity_at": event.created_at})
        return event

    async def list_for_case(self, case_id: str) -> List[CaseEventDB]:
        return sorted((e for e in self.events if e.case_id == case_id), key=lambda e: e.created_at)

    def of_type(self, event_type: str, case_id: Optional[str] = None) -> List[CaseEventDB]:
        return [e for e in self.events if e.event_type == event_type and (case_id is None or e.case_id == case_id)]


class InMemoryUserDirectory(AbstractUserDirectory):
    def __init__(self):
        self.users: Dict[str, Contact] = {}

    def _add(self, role: UserRole, first_name: str, last_name: str, with_profile: bool, **extra) -> Contact:
        contact = Contact(
            user_id=uuid.uuid4().hex,
            profile_id=uuid.uuid4().hex if with_profile else None,
            role=role,
            first_name=first_name,
            last_name=last_name,
            email=extra.pop("email", f"{first_name.lower()}@example.com"),
            **extra,
        )
        self.users[contact.user_id] = contact
        return contact

    def add_client(self, first_name: str, last_name: str = "Client", **extra) -> Contact:
        return self._add(UserRole.CLIENT, first_name, last_name, True, **extra)

    def add_lawyer(self, first_name: str, last_name: str = "Lawyer", **extra) -> Contact:
        return self._add(UserRole.LAWYER, first_name, last_name, True, **extra)

    def add_admin(self, first_name: str, last_name: str = "Admin", **extra) -> Contact:
        return self._add(UserRole.ADMIN, first_name, last_name, False, **extra)

    def _by_profile(self, role: UserRole, profile_id: Optional[str]) -> Optional[Contact]:
        return next((u for u in self.users.values() if u.role == role and u.profile_id == profile_id), None)

    async def find_user_by_id(self, user_id: str) -> Optional[Contact]:
        return self.users.get(user_id)

    async def find_client_by_id(self, client_id: str) -> Optional[Contact]:
        return self._by_profile(UserRole.CLIENT, client_id)

    async def find_client_by_user_id(self, user_id: str) -> Optional[Contact]:
        user = self.users.get(user_id)
        return user if user and user.role == UserRole.CLIENT else None

    async def find_lawyer_by_id(self, lawyer_id: str) -> Optional[Contact]:
        return self._by_profile(UserRole.LAWYER, lawyer_id)

    async def find_lawyer_by_user_id(self, user_id: str) -> Optional[Contact]:
        user = self.users.get(user_id)
        return user if user and user.role == UserRole.LAWYER else None

    async def find_active_admins(self) -> List[Contact]:
        return [u for u in self.users.values() if u.role == UserRole.ADMIN and u.is_active]

    async def find_active_available_lawyers(self) -> List[Contact]:
        return [u for u in self.users.values() if u.role == UserRole.LAWYER and u.is_active and u.is_available]


class InMemoryNotificationStore(AbstractNotificationStore):
    def __init__(self):
        self.notifications: List[NotificationDB] = []
        self.failing_users = set()

    async def create(self, user_id, notification_type, title, message, case_id=None) -> NotificationDB:
        if user_id in self.failing_users:
            raise RuntimeError(f"write failed for {user_id}")
        notification = NotificationDB(user_id=user_id, type=notification_type, title=title, message=message, case_id=case_id)
        self.notifications.append(notification)
        return notification

    async def get(self, notification_id: str) -> Optional[NotificationDB]:
        return next((n for n in self.notifications if n.id == notification_id), None)

    async def list_for_user(self, user_id: str, unread_only: bool = False, limit: int = 50) -> List[NotificationDB]:
        rows = [n for n in self.notifications if n.user_id == user_id and not (unread_only and n.is_read)]
        return sorted(rows, key=lambda n: n.created_at, reverse=True)[:limit]

    async def list_for_case(self, case_id: str, user_id: str) -> List[NotificationDB]:
        return [n for n in self.notifications if n.case_id == case_id and n.user_id == user_id]

    async def unread_count(self, user_id: str, case_id: Optional[str] = None) -> int:
        return len([
            n for n in self.notifications
            if n.user_id == user_id and not n.is_read and (case_id is None or n.case_id == case_id)
        ])

    async def mark_read(self, notification_id: str, user_id: str) -> Optional[NotificationDB]:
        for n in self.notifications:
            if n.id == notification_id and n.user_id == user_id:
                n.is_read = True
                n.read_at = NOW
                return n
        return None

    async def mark_all_read_for_case(self, case_id: str, user_id: str) -> int:
        rows = [n for n in self.notifications if n.case_id == case_id and n.user_id == user_id and not n.is_read]
        for n in rows:
            n.is_read = True
        return len(rows)

    async def mark_all_read(self, user_id: str) -> int:
        rows = [n for n in self.notifications if n.user_id == user_id and not n.is_read]
        for n in rows:
            n.is_read = True
        return len(rows)

    async def delete(self, notification_id: str, user_id: str) -> bool:
        before = len(self.notifications)
        self.notifications = [n for n in self.notifications if not (n.id == notification_id and n.user_id == user_id)]
        return len(self.notifications) < before

    def for_user(self, user_id: str) -> List[NotificationDB]:
        return [n for n in self.notifications if n.user_id == user_id]


class InMemoryTemplateStore(AbstractTemplateStore):
    def __init__(self):
        self.templates: Dict[str, EmailTemplateDB] = {}

    async def get_by_key(self, template_key: str) -> Optional[EmailTemplateDB]:
        return self.templates.get(template_key)

    async def list(self) -> List[EmailTemplateDB]:
        return list(self.templates.values())

    async def upsert(self, template: EmailTemplateDB) -> EmailTemplateDB:
        self.templates[template.template_key] = template
        return template

    async def delete(self, template_key: str) -> bool:
        return self.templates.pop(template_key, None) is not None


class InMemoryOutboundEmailLog(AbstractOutboundEmailLog):
    def __init__(self):
        self.entries: List[OutboundEmailDB] = []

    async def record(self, entry: OutboundEmailDB) -> None:
        self.entries.append(entry)


class ScriptedMailTransport(MailTransport):
    """Replays queued results (or raises queued exceptions); succeeds once the script runs out."""
    def __init__(self, configured: bool = True, script: Optional[list] = None):
        self.configured = configured
        self.script = list(script or [])
        self.sent: List[dict] = []

    @property
    def name(self) -> str:
        return "scripted"

    def is_configured(self) -> bool:
        return self.configured

    async def send(self, to: str, subject: str, html: str) -> MailSendResult:
        self.sent.append({"to": to, "subject": subject, "html": html})
        if self.script:
            outcome = self.script.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        return MailSendResult(success=True, message_id=f"msg-{len(self.sent)}")

    def recipients(self) -> List[str]:
        return [message["to"] for message in self.sent]


def build_world(clock: Optional[Clock] = None, transport: Optional[ScriptedMailTransport] = None) -> SimpleNamespace:
    """Wires every service over in-memory fakes, the way bootstrap wires them over Mongo."""
    clock = clock or Clock()
    cases = InMemoryCaseRepository(clock)
    events = InMemoryCaseEventRepository(cases, clock)
    directory = InMemoryUserDirectory()
    store = InMemoryNotificationStore()
    template_store = InMemoryTemplateStore()
    templates = TemplateService(template_store)
    transport = transport or ScriptedMailTransport()
    outbound_log = InMemoryOutboundEmailLog()
    sleep = AsyncMock()
    delivery = DeliveryEngine(
        transport, retry_policy=RetryPolicy(), outbound_log=outbound_log, sleep=sleep, uniform=lambda a, b: 0.0
    )
    pipeline = NotificationPipeline(cases, directory, store, delivery, templates, FRONTEND_URL, FIRM_NAME)
    dispatcher = NotificationDispatcher(pipeline, workers=2, queue_size=100)
    return SimpleNamespace(
        clock=clock,
        cases=cases,
        events=events,
        directory=directory,
        store=store,
        template_store=template_store,
        templates=templates,
        transport=transport,
        outbound_log=outbound_log,
        sleep=sleep,
        delivery=delivery,
        pipeline=pipeline,
        dispatcher=dispatcher,
        state_machine=CaseStateMachine(cases, events, directory, dispatcher, clock=clock),
        scanner=InactivityScanner(cases, events, directory, pipeline, threshold_days=21, throttle_days=7, clock=clock),
        digest=DigestBuilder(cases, directory, delivery, templates, FRONTEND_URL, FIRM_NAME, clock=clock),
    )
