import datetime
import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class DeliveryOutcome(str, Enum):
    SENT = "sent"
    FAILED = "failed"
    NOT_CONFIGURED = "not_configured"


class OutboundEmailDB(BaseModel): # Final outcome of one delivery, retries are not recorded separately
    model_config = ConfigDict(use_enum_values=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4().hex))
    recipient: str
    subject: str
    body: str
    outcome: DeliveryOutcome
    attempts: int = 0
    case_id: Optional[str] = None
    template_key: Optional[str] = None
    error: Optional[str] = None
    created_at: datetime.datetime = Field(default_factory=lambda: datetime.datetime.now(datetime.UTC))
