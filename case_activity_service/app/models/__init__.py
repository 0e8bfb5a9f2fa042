from .case_db import CaseDB, CaseStatus, CaseType
from .case_event_db import CaseEventDB, CaseEventType
from .notification_db import NotificationDB, NotificationType
from .directory_db import UserDB, ClientDB, LawyerDB, UserRole, Contact
from .email_template_db import EmailTemplateDB
from .outbound_email_db import OutboundEmailDB, DeliveryOutcome

__all__ = [
    "CaseDB",
    "CaseStatus",
    "CaseType",
    "CaseEventDB",
    "CaseEventType",
    "NotificationDB",
    "NotificationType",
    "UserDB",
    "ClientDB",
    "LawyerDB",
    "UserRole",
    "Contact",
    "EmailTemplateDB",
    "OutboundEmailDB",
    "DeliveryOutcome",
]
