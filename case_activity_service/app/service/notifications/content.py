# Wording of in-app notifications and the variables handed to email templates
import html
from typing import Any, Dict, NamedTuple, Optional

from pydantic import BaseModel

from case_activity_service.app.models import Contact, NotificationType
from case_activity_service.app.models.case_db import format_label
from case_activity_service.app.service.notifications.router import ActivityType, Audience, CaseSnapshot, RecipientRoute

MESSAGE_PREVIEW_LENGTH = 100

PORTAL_PATHS = {
    Audience.CLIENT: "/portal/cases/{case_id}",
    Audience.LAWYER: "/lawyer/cases/{case_id}",
    Audience.ADMIN: "/admin/cases/{case_id}",
}


class ContentSpec(NamedTuple):
    notification_type: NotificationType
    title: str
    message: str
    template_key: Optional[str]


class NotificationContent(BaseModel):
    notification_type: NotificationType
    title: str
    message: str
    template_key: Optional[str] = None


_DOCUMENT_MESSAGE = '{actor_name} uploaded "{document_name}" to case {case_number}.'
_NEW_CASE_FOR_LAWYER = ContentSpec(
    NotificationType.NEW_CASE,
    "New Case Assigned",
    "You have been assigned a new {case_type_label} case ({case_number}) from {client_name}.",
    "case_assigned_to_lawyer",
)
_NEW_MESSAGE = ContentSpec(
    NotificationType.MESSAGE_RECEIVED,
    "New Message",
    "{actor_name} sent a message on case {case_number}.",
    "new_message",
)

CONTENT_TABLE: Dict[tuple, ContentSpec] = {
    (ActivityType.CASE_CREATED, Audience.CLIENT): ContentSpec(
        NotificationType.NEW_CASE,
        "Case Submitted Successfully",
        "Your {case_type_label} case ({case_number}) has been submitted. {client_assignment_note}",
        "case_submitted",
    ),
    (ActivityType.CASE_CREATED, Audience.ADMIN): ContentSpec(
        NotificationType.NEW_CASE,
        "New Case Submitted",
        "New {case_type_label} case ({case_number}) submitted by {client_name}. {admin_assignment_note}",
        None,
    ),
    (ActivityType.CASE_CREATED, Audience.LAWYER): _NEW_CASE_FOR_LAWYER,
    (ActivityType.STATUS_CHANGED, Audience.CLIENT): ContentSpec(
        NotificationType.CASE_UPDATE,
        "Case Status Updated",
        "Your case {case_number} status has been updated to: {new_status_label}.",
        "case_status_changed",
    ),
    (ActivityType.LAWYER_ASSIGNED, Audience.CLIENT): ContentSpec(
        NotificationType.CASE_ASSIGNED,
        "Lawyer Assigned",
        "{lawyer_name} has been assigned to your case {case_number}. They will contact you soon.",
        "lawyer_assigned",
    ),
    (ActivityType.LAWYER_ASSIGNED, Audience.LAWYER): _NEW_CASE_FOR_LAWYER,
    (ActivityType.DOCUMENT_UPLOADED, Audience.LAWYER): ContentSpec(
        NotificationType.DOCUMENT_UPLOADED, "Client Uploaded Document", _DOCUMENT_MESSAGE, "document_uploaded",
    ),
    (ActivityType.DOCUMENT_UPLOADED, Audience.CLIENT): ContentSpec(
        NotificationType.DOCUMENT_UPLOADED, "New Document Added", _DOCUMENT_MESSAGE, "document_uploaded",
    ),
    (ActivityType.MESSAGE_SENT, Audience.CLIENT): _NEW_MESSAGE,
    (ActivityType.MESSAGE_SENT, Audience.LAWYER): _NEW_MESSAGE,
    (ActivityType.INACTIVITY_DETECTED, Audience.CLIENT): ContentSpec(
        NotificationType.SYSTEM_ALERT,
        "Case Update Needed",
        "Your case {case_number} has had no activity for {days_inactive} days. "
        "Please log in to review or contact your attorney.",
        "inactivity_reminder",
    ),
}


class _BlankMissing(dict):
    def __missing__(self, key):
        return ""


def build_context(
    snapshot: CaseSnapshot,
    actor: Optional[Contact] = None,
    details: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Flat snake_case context shared by in-app wording and email variables."""
    details = details or {}
    case = snapshot.case
    lawyer_name = snapshot.lawyer.name if snapshot.lawyer else ""
    old_status = details.get("old_status")
    new_status = details.get("new_status") or case.status
    message = details.get("message_content") or ""
    return {
        "case_id": case.id,
        "case_number": case.case_number,
        "case_title": case.title,
        "case_type_label": format_label(case.case_type),
        "client_name": snapshot.client.name if snapshot.client else "",
        "lawyer_name": lawyer_name,
        "actor_name": actor.name if actor else "Someone",
        "old_status_label": format_label(old_status) if old_status else "",
        "new_status_label": format_label(new_status),
        "document_name": details.get("document_name", ""),
        "message_preview": message[:MESSAGE_PREVIEW_LENGTH],
        "days_inactive": details.get("days_inactive", ""),
        "client_assignment_note": (
            f"Your attorney {lawyer_name} will be in touch soon."
            if lawyer_name else "A lawyer will be assigned to your case shortly."
        ),
        "admin_assignment_note": f"Assigned to {lawyer_name}." if lawyer_name else "No lawyer assigned yet.",
    }


def compose(activity: ActivityType, audience: Audience, context: Dict[str, Any]) -> Optional[NotificationContent]:
    spec = CONTENT_TABLE.get((ActivityType(activity), Audience(audience)))
    if spec is None:
        return None
    values = _BlankMissing(context)
    return NotificationContent(
        notification_type=spec.notification_type,
        title=spec.title.format_map(values),
        message=spec.message.format_map(values).strip(),
        template_key=spec.template_key,
    )


def email_variables(
    route: RecipientRoute,
    context: Dict[str, Any],
    frontend_url: str,
    firm_name: str
) -> Dict[str, str]:
    """camelCase template variables; values are HTML-escaped because they land in HTML bodies."""
    portal_url = frontend_url.rstrip("/") + PORTAL_PATHS[Audience(route.audience)].format(case_id=context["case_id"])
    raw = {
        "firmName": firm_name,
        "portalUrl": portal_url,
        "recipientName": route.display_name,
        "caseNumber": context["case_number"],
        "caseTitle": context["case_title"],
        "caseType": context["case_type_label"],
        "clientName": context["client_name"],
        "lawyerName": context["lawyer_name"],
        "oldStatus": context["old_status_label"],
        "newStatus": context["new_status_label"],
        "senderName": context["actor_name"],
        "uploaderName": context["actor_name"],
        "documentName": context["document_name"],
        "messagePreview": context["message_preview"],
        "daysSinceActivity": str(context["days_inactive"]),
    }
    return {key: html.escape(str(value)) for key, value in raw.items()}
