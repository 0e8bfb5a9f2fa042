import datetime
import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CaseStatus(str, Enum):
    NEW = "new"
    IN_REVIEW = "in_review"
    ACTIVE = "active"
    PENDING_CLIENT = "pending_client"
    PENDING_DOCUMENTS = "pending_documents"
    IN_PROGRESS = "in_progress"
    AWAITING_RESPONSE = "awaiting_response"
    RESOLVED = "resolved"
    CLOSED = "closed"
    ARCHIVED = "archived"


class CaseType(str, Enum):
    PERSONAL_INJURY = "personal_injury"
    FAMILY_LAW = "family_law"
    CRIMINAL_DEFENSE = "criminal_defense"
    ESTATE_PLANNING = "estate_planning"
    BUSINESS_LAW = "business_law"
    REAL_ESTATE = "real_estate"
    IMMIGRATION = "immigration"
    BANKRUPTCY = "bankruptcy"
    EMPLOYMENT = "employment"
    OTHER = "other"


CASE_TYPE_PREFIXES = {
    CaseType.PERSONAL_INJURY: "PI",
    CaseType.FAMILY_LAW: "FL",
    CaseType.CRIMINAL_DEFENSE: "CD",
    CaseType.ESTATE_PLANNING: "EP",
    CaseType.BUSINESS_LAW: "BL",
    CaseType.REAL_ESTATE: "RE",
    CaseType.IMMIGRATION: "IM",
    CaseType.BANKRUPTCY: "BK",
    CaseType.EMPLOYMENT: "EM",
    CaseType.OTHER: "OT",
}

# Entering one of these stamps closed_at.
TERMINAL_STATUSES = frozenset({CaseStatus.CLOSED, CaseStatus.ARCHIVED})

# Cases in these statuses are never nudged for inactivity and count as inactive in digests.
INACTIVE_STATUSES = frozenset({CaseStatus.CLOSED, CaseStatus.ARCHIVED, CaseStatus.RESOLVED})


def format_label(value: str) -> str:
    """'pending_documents' -> 'Pending Documents'."""
    return " ".join(part.capitalize() for part in value.split("_"))


class CaseDB(BaseModel): # Read/write model for the cases collection
    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4().hex))
    case_number: str
    sequence: int
    client_id: str
    lawyer_id: Optional[str] = None
    title: str
    description: Optional[str] = None
    case_type: CaseType
    status: CaseStatus = CaseStatus.NEW
    priority: int = 3

    closed_at: Optional[datetime.datetime] = None
    last_activity_at: datetime.datetime = Field(default_factory=lambda: datetime.datetime.now(datetime.UTC))
    last_inactivity_notification: Optional[datetime.datetime] = None
    created_at: datetime.datetime = Field(default_factory=lambda: datetime.datetime.now(datetime.UTC))
    updated_at: datetime.datetime = Field(default_factory=lambda: datetime.datetime.now(datetime.UTC))
