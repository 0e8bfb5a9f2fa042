import datetime
import uuid
from enum import Enum
from typing import Optional, Dict, Any

from pydantic import BaseModel, ConfigDict, Field


class CaseEventType(str, Enum):
    CASE_CREATED = "case_created"
    CASE_UPDATED = "case_updated"
    STATUS_CHANGED = "status_changed"
    DOCUMENT_UPLOADED = "document_uploaded"
    DOCUMENT_DOWNLOADED = "document_downloaded"
    EMAIL_RECEIVED = "email_received"
    EMAIL_SENT = "email_sent"
    LAWYER_ASSIGNED = "lawyer_assigned"
    LAWYER_NOTE_ADDED = "lawyer_note_added"
    CLIENT_NOTIFIED = "client_notified"
    INACTIVITY_ALERT = "inactivity_alert"
    PENDING = "pending"
    MESSAGE_SENT = "message_sent"
    DEADLINE_REMINDER = "deadline_reminder"


class CaseEventDB(BaseModel): # Append-only audit record, never updated
    model_config = ConfigDict(use_enum_values=True, frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4().hex))
    case_id: str
    event_type: CaseEventType
    actor_id: Optional[str] = None
    description: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime.datetime = Field(default_factory=lambda: datetime.datetime.now(datetime.UTC))
