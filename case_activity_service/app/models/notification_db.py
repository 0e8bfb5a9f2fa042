import datetime
import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class NotificationType(str, Enum):
    NEW_CASE = "new_case"
    CASE_UPDATE = "case_update"
    DOCUMENT_UPLOADED = "document_uploaded"
    MESSAGE_RECEIVED = "message_received"
    CASE_ASSIGNED = "case_assigned"
    DEADLINE_REMINDER = "deadline_reminder"
    SYSTEM_ALERT = "system_alert"


class NotificationDB(BaseModel): # In-app notification, one row per recipient and triggering event
    model_config = ConfigDict(use_enum_values=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4().hex))
    user_id: str
    type: NotificationType
    title: str
    message: str
    case_id: Optional[str] = None
    is_read: bool = False
    read_at: Optional[datetime.datetime] = None
    created_at: datetime.datetime = Field(default_factory=lambda: datetime.datetime.now(datetime.UTC))
