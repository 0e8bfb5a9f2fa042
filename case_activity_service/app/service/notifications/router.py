"""
Recipient routing: who is told about which case activity, and over which channels.

All routing policy lives in ROUTING_TABLE. route() is a pure function of the
activity type, a snapshot of the case and its parties, and the acting user.
Rules are evaluated in table order and a rule whose party is missing (for
example no lawyer assigned yet) simply contributes no route.
"""
from enum import Enum
from typing import Callable, Dict, FrozenSet, List, NamedTuple, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from case_activity_service.app.models import CaseDB, Contact, UserRole


class ActivityType(str, Enum):
    CASE_CREATED = "case_created"
    STATUS_CHANGED = "status_changed"
    LAWYER_ASSIGNED = "lawyer_assigned"
    DOCUMENT_UPLOADED = "document_uploaded"
    MESSAGE_SENT = "message_sent"
    INACTIVITY_DETECTED = "inactivity_detected"


class Channel(str, Enum):
    IN_APP = "in_app"
    EMAIL = "email"


class Audience(str, Enum):
    """The capacity in which a recipient is addressed; selects wording, template and portal link."""
    CLIENT = "client"
    LAWYER = "lawyer"
    ADMIN = "admin"


IN_APP_ONLY: FrozenSet[Channel] = frozenset({Channel.IN_APP})
IN_APP_AND_EMAIL: FrozenSet[Channel] = frozenset({Channel.IN_APP, Channel.EMAIL})


class CaseSnapshot(BaseModel):
    case: CaseDB
    client: Optional[Contact] = None
    lawyer: Optional[Contact] = None
    admins: List[Contact] = Field(default_factory=list)


class Actor(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    user_id: Optional[str] = None
    role: Optional[UserRole] = None


class RecipientRoute(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    role: UserRole
    audience: Audience
    display_name: str
    email: str
    channels: FrozenSet[Channel]

    def wants(self, channel: Channel) -> bool:
        return channel in self.channels


PartySelector = Callable[[CaseSnapshot, Actor], List[Tuple[Contact, Audience]]]


def client_party(snapshot: CaseSnapshot, actor: Actor) -> List[Tuple[Contact, Audience]]:
    return [(snapshot.client, Audience.CLIENT)] if snapshot.client else []


def lawyer_party(snapshot: CaseSnapshot, actor: Actor) -> List[Tuple[Contact, Audience]]:
    return [(snapshot.lawyer, Audience.LAWYER)] if snapshot.lawyer else []


def active_admins_party(snapshot: CaseSnapshot, actor: Actor) -> List[Tuple[Contact, Audience]]:
    return [(admin, Audience.ADMIN) for admin in snapshot.admins if admin.is_active]


def counterparty_of_uploader_role(snapshot: CaseSnapshot, actor: Actor) -> List[Tuple[Contact, Audience]]:
    if actor.role == UserRole.CLIENT:
        return lawyer_party(snapshot, actor)
    return client_party(snapshot, actor)


def counterparty_of_sender(snapshot: CaseSnapshot, actor: Actor) -> List[Tuple[Contact, Audience]]:
    # Identity, not role: an admin or lawyer may be acting on either side of the case.
    if snapshot.client and actor.user_id == snapshot.client.user_id:
        return lawyer_party(snapshot, actor)
    return client_party(snapshot, actor)


class RouteRule(NamedTuple):
    party: PartySelector
    channels: FrozenSet[Channel]


ROUTING_TABLE: Dict[ActivityType, Tuple[RouteRule, ...]] = {
    ActivityType.CASE_CREATED: (
        RouteRule(client_party, IN_APP_AND_EMAIL),
        RouteRule(active_admins_party, IN_APP_ONLY),
        RouteRule(lawyer_party, IN_APP_AND_EMAIL),
    ),
    ActivityType.STATUS_CHANGED: (
        RouteRule(client_party, IN_APP_AND_EMAIL),
    ),
    ActivityType.LAWYER_ASSIGNED: (
        RouteRule(client_party, IN_APP_AND_EMAIL),
        RouteRule(lawyer_party, IN_APP_AND_EMAIL),
    ),
    ActivityType.DOCUMENT_UPLOADED: (
        RouteRule(counterparty_of_uploader_role, IN_APP_ONLY),
    ),
    ActivityType.MESSAGE_SENT: (
        RouteRule(counterparty_of_sender, IN_APP_AND_EMAIL),
    ),
    ActivityType.INACTIVITY_DETECTED: (
        RouteRule(client_party, IN_APP_AND_EMAIL),
    ),
}


def requires_admins(activity: ActivityType) -> bool:
    """Whether routing this activity needs the admin roster loaded into the snapshot."""
    return any(rule.party is active_admins_party for rule in ROUTING_TABLE.get(ActivityType(activity), ()))


def route(activity: ActivityType, snapshot: CaseSnapshot, actor: Optional[Actor] = None) -> List[RecipientRoute]:
    actor = actor or Actor()
    routes: List[RecipientRoute] = []
    for rule in ROUTING_TABLE.get(ActivityType(activity), ()):
        for contact, audience in rule.party(snapshot, actor):
            routes.append(RecipientRoute(
                user_id=contact.user_id,
                role=contact.role,
                audience=audience,
                display_name=contact.name,
                email=contact.email,
                channels=rule.channels,
            ))
    return routes
