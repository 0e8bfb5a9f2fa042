# Unit tests for the Mongo case and case-event repositories
import datetime

import pytest
from unittest.mock import AsyncMock, MagicMock, ANY
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from case_activity_service.app.models import CaseDB, CaseEventType
from case_activity_service.app.service.exceptions import CaseNumberConflictError
from case_activity_service.infrastructure.database.case_store import (
    CASES_COLLECTION, CASE_EVENTS_COLLECTION, MongoCaseEventRepository, MongoCaseRepository
)

NOW = datetime.datetime(2025, 1, 6, 14, 0, tzinfo=datetime.UTC)


@pytest.fixture
def collections():
    return {CASES_COLLECTION: MagicMock(), CASE_EVENTS_COLLECTION: MagicMock()}


@pytest.fixture
def mock_db(collections):
    db = MagicMock()
    db.__getitem__.side_effect = lambda name: collections[name]
    return db


def make_case(**fields) -> CaseDB:
    defaults = dict(case_number="2025-PI-0001", sequence=1, client_id="client-1", title="Case", case_type="personal_injury")
    defaults.update(fields)
    return CaseDB(**defaults)


@pytest.mark.asyncio
async def test_get_case_found(mock_db, collections):
    case = make_case()
    collections[CASES_COLLECTION].find_one = AsyncMock(return_value=case.model_dump())

    result = await MongoCaseRepository(mock_db).get(case.id)

    assert result == case
    collections[CASES_COLLECTION].find_one.assert_awaited_once_with({"id": case.id})


@pytest.mark.asyncio
async def test_get_case_missing(mock_db, collections):
    collections[CASES_COLLECTION].find_one = AsyncMock(return_value=None)

    assert await MongoCaseRepository(mock_db).get("missing") is None


@pytest.mark.asyncio
async def test_insert_maps_duplicate_key_to_conflict(mock_db, collections):
    collections[CASES_COLLECTION].insert_one = AsyncMock(side_effect=DuplicateKeyError("E11000 duplicate key"))

    with pytest.raises(CaseNumberConflictError) as exc_info:
        await MongoCaseRepository(mock_db).insert(make_case())
    assert exc_info.value.case_number == "2025-PI-0001"


@pytest.mark.asyncio
async def test_insert_passes_session(mock_db, collections):
    collections[CASES_COLLECTION].insert_one = AsyncMock()
    session = object()
    case = make_case()

    await MongoCaseRepository(mock_db).insert(case, session=session)

    collections[CASES_COLLECTION].insert_one.assert_awaited_once_with(case.model_dump(), session=session)


@pytest.mark.asyncio
async def test_update_sets_fields_and_updated_at(mock_db, collections):
    case = make_case(status="active")
    collections[CASES_COLLECTION].find_one_and_update = AsyncMock(return_value=case.model_dump())

    result = await MongoCaseRepository(mock_db).update(case.id, {"status": "active"})

    assert result.status == "active"
    query, update = collections[CASES_COLLECTION].find_one_and_update.await_args.args
    assert query == {"id": case.id}
    assert update["$set"]["status"] == "active"
    assert "updated_at" in update["$set"]
    assert collections[CASES_COLLECTION].find_one_and_update.await_args.kwargs["return_document"] == ReturnDocument.AFTER


@pytest.mark.asyncio
async def test_update_missing_case_returns_none(mock_db, collections):
    collections[CASES_COLLECTION].find_one_and_update = AsyncMock(return_value=None)

    assert await MongoCaseRepository(mock_db).update("missing", {"status": "active"}) is None


@pytest.mark.asyncio
async def test_max_sequence(mock_db, collections):
    collections[CASES_COLLECTION].find_one = AsyncMock(return_value={"sequence": 41})

    assert await MongoCaseRepository(mock_db).max_sequence(2025, "PI") == 41
    collections[CASES_COLLECTION].find_one.assert_awaited_once_with(
        {"case_number": {"$regex": "^2025-PI-"}}, sort=[("sequence", -1)]
    )


@pytest.mark.asyncio
async def test_max_sequence_defaults_to_zero(mock_db, collections):
    collections[CASES_COLLECTION].find_one = AsyncMock(return_value=None)

    assert await MongoCaseRepository(mock_db).max_sequence(2025, "PI") == 0


@pytest.mark.asyncio
async def test_list_inactive_query(mock_db, collections):
    stale = make_case(last_activity_at=NOW - datetime.timedelta(days=30))
    cursor = collections[CASES_COLLECTION].find.return_value.sort.return_value
    cursor.to_list = AsyncMock(return_value=[stale.model_dump()])

    result = await MongoCaseRepository(mock_db).list_inactive(21, 7, NOW)

    assert [c.id for c in result] == [stale.id]
    query = collections[CASES_COLLECTION].find.call_args.args[0]
    assert query["status"] == {"$nin": ["archived", "closed", "resolved"]}
    assert query["last_activity_at"] == {"$lt": NOW - datetime.timedelta(days=21)}
    assert query["$or"] == [
        {"last_inactivity_notification": None},
        {"last_inactivity_notification": {"$lt": NOW - datetime.timedelta(days=7)}},
    ]
    collections[CASES_COLLECTION].find.return_value.sort.assert_called_once_with("last_activity_at", 1)


@pytest.mark.asyncio
async def test_list_for_lawyer(mock_db, collections):
    case = make_case(lawyer_id="lawyer-1")
    cursor = collections[CASES_COLLECTION].find.return_value.sort.return_value
    cursor.to_list = AsyncMock(return_value=[case.model_dump()])

    result = await MongoCaseRepository(mock_db).list_for_lawyer("lawyer-1")

    assert result == [case]
    collections[CASES_COLLECTION].find.assert_called_once_with({"lawyer_id": "lawyer-1"})


@pytest.mark.asyncio
async def test_transaction_without_replica_set_yields_none(mock_db):
    async with MongoCaseRepository(mock_db, use_transactions=False).transaction() as session:
        assert session is None
    mock_db.client.start_session.assert_not_called()


@pytest.mark.asyncio
async def test_transaction_opens_session_and_transaction(mock_db):
    transaction_ctx = MagicMock()
    transaction_ctx.__aenter__ = AsyncMock()
    transaction_ctx.__aexit__ = AsyncMock(return_value=False)
    active_session = MagicMock()
    active_session.start_transaction.return_value = transaction_ctx
    session = MagicMock()
    session.__aenter__ = AsyncMock(return_value=active_session)
    session.__aexit__ = AsyncMock(return_value=False)
    mock_db.client.start_session = AsyncMock(return_value=session)

    async with MongoCaseRepository(mock_db, use_transactions=True).transaction() as active:
        assert active is active_session

    mock_db.client.start_session.assert_awaited_once()
    active_session.start_transaction.assert_called_once()
    transaction_ctx.__aexit__.assert_awaited_once()
    session.__aexit__.assert_awaited_once()


@pytest.mark.asyncio
async def test_delete_case(mock_db, collections):
    collections[CASES_COLLECTION].delete_one = AsyncMock(return_value=MagicMock(deleted_count=1))

    assert await MongoCaseRepository(mock_db).delete("case-1") is True
    collections[CASES_COLLECTION].delete_one.assert_awaited_once_with({"id": "case-1"}, session=None)


@pytest.mark.asyncio
async def test_append_inserts_event_and_raises_last_activity_with_max(mock_db, collections):
    collections[CASE_EVENTS_COLLECTION].insert_one = AsyncMock()
    collections[CASES_COLLECTION].update_one = AsyncMock()

    event = await MongoCaseEventRepository(mock_db).append(
        "case-1", CaseEventType.STATUS_CHANGED, "Status changed", actor_id="user-1",
        metadata={"old_status": "new", "new_status": "active"},
    )

    assert event.event_type == "status_changed"
    collections[CASE_EVENTS_COLLECTION].insert_one.assert_awaited_once_with(event.model_dump(), session=None)
    collections[CASES_COLLECTION].update_one.assert_awaited_once_with(
        {"id": "case-1"}, {"$max": {"last_activity_at": event.created_at}}, session=None
    )


@pytest.mark.asyncio
async def test_list_for_case_sorted_by_creation(mock_db, collections):
    cursor = collections[CASE_EVENTS_COLLECTION].find.return_value.sort.return_value
    cursor.to_list = AsyncMock(return_value=[])

    await MongoCaseEventRepository(mock_db).list_for_case("case-1")

    collections[CASE_EVENTS_COLLECTION].find.assert_called_once_with({"case_id": "case-1"})
    collections[CASE_EVENTS_COLLECTION].find.return_value.sort.assert_called_once_with("created_at", 1)
    cursor.to_list.assert_awaited_once_with(length=None)
