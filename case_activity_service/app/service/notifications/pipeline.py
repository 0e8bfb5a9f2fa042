"""
The notification pipeline: one case activity in, in-app rows and emails out.

Every recipient is isolated from every other: a failed in-app write or email for
one route is logged and counted, and the remaining routes are still served.
In-app rows for all routes are written first, then emails are sent in route
order, so slow email retries never delay the in-app notifications.
"""
import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from case_activity_service.app.models import Contact, UserRole
from case_activity_service.app.observability import tracer
from case_activity_service.app.service.delivery.engine import DeliveryEngine
from case_activity_service.app.service.delivery.template_service import TemplateService
from case_activity_service.app.service.interfaces.case_repository import AbstractCaseRepository
from case_activity_service.app.service.interfaces.notification_store import AbstractNotificationStore
from case_activity_service.app.service.interfaces.user_directory import AbstractUserDirectory
from case_activity_service.app.service.notifications import content
from case_activity_service.app.service.notifications.router import (
    ActivityType, Actor, CaseSnapshot, Channel, RecipientRoute, requires_admins, route
)
from opentelemetry.trace import Status, StatusCode

logger = logging.getLogger(__name__)


class NotificationRequest(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    activity: ActivityType
    case_id: str
    actor_user_id: Optional[str] = None
    actor_role: Optional[UserRole] = None
    details: Dict[str, Any] = Field(default_factory=dict)


class DispatchSummary(BaseModel):
    routes: int = 0
    in_app_created: int = 0
    in_app_failed: int = 0
    emails_sent: int = 0
    emails_failed: int = 0


class NotificationPipeline:
    def __init__(
        self,
        cases: AbstractCaseRepository,
        directory: AbstractUserDirectory,
        store: AbstractNotificationStore,
        delivery: DeliveryEngine,
        templates: TemplateService,
        frontend_url: str,
        firm_name: str
    ):
        self.cases = cases
        self.directory = directory
        self.store = store
        self.delivery = delivery
        self.templates = templates
        self.frontend_url = frontend_url
        self.firm_name = firm_name

    async def load_snapshot(self, activity: ActivityType, case_id: str) -> Optional[CaseSnapshot]:
        case = await self.cases.get(case_id)
        if case is None:
            return None
        client = await self.directory.find_client_by_id(case.client_id)
        lawyer = await self.directory.find_lawyer_by_id(case.lawyer_id) if case.lawyer_id else None
        admins = await self.directory.find_active_admins() if requires_admins(activity) else []
        return CaseSnapshot(case=case, client=client, lawyer=lawyer, admins=admins)

    async def _resolve_actor(self, request: NotificationRequest) -> Optional[Contact]:
        if not request.actor_user_id:
            return None
        return await self.directory.find_user_by_id(request.actor_user_id)

    async def dispatch(self, request: NotificationRequest) -> DispatchSummary:
        summary = DispatchSummary()
        with tracer.start_as_current_span("NotificationPipeline.dispatch") as span:
            span.set_attribute("notification.activity", request.activity)
            span.set_attribute("case.id", request.case_id)

            snapshot = await self.load_snapshot(request.activity, request.case_id)
            if snapshot is None:
                logger.warning(f"Case {request.case_id} not found. Dropping {request.activity} notifications.")
                return summary

            actor_contact = await self._resolve_actor(request)
            actor = Actor(
                user_id=request.actor_user_id,
                role=request.actor_role or (actor_contact.role if actor_contact else None),
            )
            routes = route(request.activity, snapshot, actor)
            summary.routes = len(routes)
            span.set_attribute("notification.routes", len(routes))
            if not routes:
                logger.info(f"No recipients for {request.activity} on case {snapshot.case.case_number}.")
                return summary

            context = content.build_context(snapshot, actor_contact, request.details)

            for recipient in routes:
                if recipient.wants(Channel.IN_APP):
                    await self._write_in_app(request.activity, recipient, context, summary)

            for recipient in routes:
                if recipient.wants(Channel.EMAIL):
                    await self._send_email(request.activity, recipient, context, summary)

            if summary.in_app_failed or summary.emails_failed:
                span.set_status(Status(StatusCode.ERROR, "one or more recipients could not be notified"))
            logger.info(
                f"{request.activity} on case {snapshot.case.case_number}: {summary.routes} routes, "
                f"{summary.in_app_created} in-app created ({summary.in_app_failed} failed), "
                f"{summary.emails_sent} emails sent ({summary.emails_failed} failed)."
            )
        return summary

    async def _write_in_app(
        self,
        activity: ActivityType,
        recipient: RecipientRoute,
        context: Dict[str, Any],
        summary: DispatchSummary
    ) -> None:
        notification = content.compose(activity, recipient.audience, context)
        if notification is None:
            logger.error(f"No in-app wording for {activity} addressed to {recipient.audience}.")
            summary.in_app_failed += 1
            return
        try:
            await self.store.create(
                user_id=recipient.user_id,
                notification_type=notification.notification_type,
                title=notification.title,
                message=notification.message,
                case_id=context["case_id"],
            )
            summary.in_app_created += 1
        except Exception as e:
            summary.in_app_failed += 1
            logger.error(f"Failed to create in-app notification for user {recipient.user_id}: {e}", exc_info=True)

    async def _send_email(
        self,
        activity: ActivityType,
        recipient: RecipientRoute,
        context: Dict[str, Any],
        summary: DispatchSummary
    ) -> None:
        notification = content.compose(activity, recipient.audience, context)
        if notification is None or not notification.template_key:
            return
        if not recipient.email:
            logger.warning(f"User {recipient.user_id} has no email address. Skipping {notification.template_key} email.")
            summary.emails_failed += 1
            return
        try:
            variables = content.email_variables(recipient, context, self.frontend_url, self.firm_name)
            rendered = await self.templates.render_template(notification.template_key, variables)
            delivered = await self.delivery.send(
                recipient.email,
                rendered.subject,
                rendered.html,
                case_id=context["case_id"],
                template_key=notification.template_key,
            )
        except Exception as e:
            delivered = False
            logger.error(f"Failed to prepare {notification.template_key} email for {recipient.email}: {e}", exc_info=True)
        if delivered:
            summary.emails_sent += 1
        else:
            summary.emails_failed += 1
