import datetime
import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class UserRole(str, Enum):
    CLIENT = "client"
    LAWYER = "lawyer"
    ADMIN = "admin"


class UserDB(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4().hex))
    email: str
    first_name: str
    last_name: str
    role: UserRole
    is_active: bool = True
    created_at: datetime.datetime = Field(default_factory=lambda: datetime.datetime.now(datetime.UTC))


class ClientDB(BaseModel): # Client profile, linked to a user
    id: str = Field(default_factory=lambda: str(uuid.uuid4().hex))
    user_id: str


class LawyerDB(BaseModel): # Lawyer profile, linked to a user
    id: str = Field(default_factory=lambda: str(uuid.uuid4().hex))
    user_id: str
    is_available: bool = True


class Contact(BaseModel):
    """A user as seen by the notification pipeline: who they are and how to reach them."""
    model_config = ConfigDict(use_enum_values=True)

    user_id: str
    profile_id: Optional[str] = None # client or lawyer profile id, None for admins
    role: UserRole
    first_name: str
    last_name: str
    email: str
    is_active: bool = True
    is_available: bool = True

    @property
    def name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_user(cls, user: UserDB, profile_id: Optional[str] = None, is_available: bool = True) -> "Contact":
        return cls(
            user_id=user.id,
            profile_id=profile_id,
            role=user.role,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            is_active=user.is_active,
            is_available=is_available,
        )
