# Unit tests for the declarative recipient routing table
import pytest

from case_activity_service.app.models import CaseDB, Contact, UserRole
from case_activity_service.app.service.notifications.router import (
    ROUTING_TABLE, ActivityType, Actor, Audience, CaseSnapshot, Channel, requires_admins, route
)


def make_contact(role: UserRole, name: str, is_active: bool = True) -> Contact:
    return Contact(
        user_id=f"user-{name.lower()}",
        profile_id=f"profile-{name.lower()}",
        role=role,
        first_name=name,
        last_name="Test",
        email=f"{name.lower()}@example.com",
        is_active=is_active,
    )


CLIENT = make_contact(UserRole.CLIENT, "Ana")
LAWYER = make_contact(UserRole.LAWYER, "Lee")
ADMIN_1 = make_contact(UserRole.ADMIN, "Ada")
ADMIN_2 = make_contact(UserRole.ADMIN, "Bob")
INACTIVE_ADMIN = make_contact(UserRole.ADMIN, "Old", is_active=False)


def make_snapshot(with_lawyer: bool = True, admins=None) -> CaseSnapshot:
    case = CaseDB(
        case_number="2025-PI-0001",
        sequence=1,
        client_id=CLIENT.profile_id,
        lawyer_id=LAWYER.profile_id if with_lawyer else None,
        title="Slip and fall",
        case_type="personal_injury",
    )
    return CaseSnapshot(
        case=case,
        client=CLIENT,
        lawyer=LAWYER if with_lawyer else None,
        admins=admins if admins is not None else [],
    )


def test_every_activity_has_a_routing_rule():
    assert set(ROUTING_TABLE) == set(ActivityType)


def test_case_created_routes_client_then_admins_then_lawyer():
    snapshot = make_snapshot(with_lawyer=True, admins=[ADMIN_1, ADMIN_2])

    routes = route(ActivityType.CASE_CREATED, snapshot)

    assert [r.user_id for r in routes] == [CLIENT.user_id, ADMIN_1.user_id, ADMIN_2.user_id, LAWYER.user_id]
    assert routes[0].channels == {Channel.IN_APP, Channel.EMAIL}
    assert all(r.channels == {Channel.IN_APP} for r in routes[1:3])
    assert routes[3].audience == Audience.LAWYER


def test_case_created_without_lawyer_skips_lawyer_and_inactive_admins():
    snapshot = make_snapshot(with_lawyer=False, admins=[ADMIN_1, INACTIVE_ADMIN])

    routes = route(ActivityType.CASE_CREATED, snapshot)

    assert [r.user_id for r in routes] == [CLIENT.user_id, ADMIN_1.user_id]


def test_status_changed_routes_only_the_client():
    routes = route(ActivityType.STATUS_CHANGED, make_snapshot(admins=[ADMIN_1]))

    assert len(routes) == 1
    assert routes[0].user_id == CLIENT.user_id
    assert routes[0].wants(Channel.EMAIL)


def test_lawyer_assigned_routes_client_then_lawyer():
    routes = route(ActivityType.LAWYER_ASSIGNED, make_snapshot())

    assert [(r.user_id, r.audience) for r in routes] == [
        (CLIENT.user_id, Audience.CLIENT),
        (LAWYER.user_id, Audience.LAWYER),
    ]


@pytest.mark.parametrize("with_lawyer, expected", [(True, 1), (False, 0)])
def test_document_uploaded_by_client_goes_to_lawyer_only(with_lawyer, expected):
    routes = route(
        ActivityType.DOCUMENT_UPLOADED,
        make_snapshot(with_lawyer=with_lawyer),
        Actor(user_id=CLIENT.user_id, role=UserRole.CLIENT),
    )

    assert len(routes) == expected
    if expected:
        assert routes[0].user_id == LAWYER.user_id
        assert not routes[0].wants(Channel.EMAIL)


@pytest.mark.parametrize("uploader_role", [UserRole.LAWYER, UserRole.ADMIN])
def test_document_uploaded_by_staff_goes_to_client(uploader_role):
    routes = route(
        ActivityType.DOCUMENT_UPLOADED,
        make_snapshot(),
        Actor(user_id="user-staff", role=uploader_role),
    )

    assert [r.user_id for r in routes] == [CLIENT.user_id]
    assert routes[0].channels == {Channel.IN_APP}


def test_message_from_client_goes_to_lawyer_by_identity():
    routes = route(ActivityType.MESSAGE_SENT, make_snapshot(), Actor(user_id=CLIENT.user_id))

    assert [r.user_id for r in routes] == [LAWYER.user_id]
    assert routes[0].wants(Channel.EMAIL)


def test_message_from_client_without_lawyer_has_no_recipients():
    routes = route(ActivityType.MESSAGE_SENT, make_snapshot(with_lawyer=False), Actor(user_id=CLIENT.user_id))

    assert routes == []


def test_message_from_admin_goes_to_client():
    routes = route(ActivityType.MESSAGE_SENT, make_snapshot(), Actor(user_id=ADMIN_1.user_id, role=UserRole.ADMIN))

    assert [r.user_id for r in routes] == [CLIENT.user_id]


def test_inactivity_routes_client_with_email():
    routes = route(ActivityType.INACTIVITY_DETECTED, make_snapshot())

    assert len(routes) == 1
    assert routes[0].audience == Audience.CLIENT
    assert routes[0].channels == {Channel.IN_APP, Channel.EMAIL}


def test_missing_client_produces_no_route():
    snapshot = make_snapshot()
    snapshot.client = None

    assert route(ActivityType.STATUS_CHANGED, snapshot) == []


def test_route_accepts_plain_string_activity():
    assert len(route("status_changed", make_snapshot())) == 1


def test_only_case_created_needs_admins():
    assert requires_admins(ActivityType.CASE_CREATED)
    assert not any(requires_admins(a) for a in ActivityType if a != ActivityType.CASE_CREATED)
