"""Unit tests for RelationshipTracker: wiring, defaults, error stamping.

The tool functions are patched out, so no database is needed.
"""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import asyncpg
import pytest

from rapport.config import QueryConfig
from rapport.db import Database
from rapport.errors import (
    ConstraintViolationError,
    InvalidArgumentError,
    NotFoundError,
    RapportError,
    StoreUnavailableError,
)
from rapport.service import RelationshipTracker, coerce_contact_id

pytestmark = pytest.mark.unit


@pytest.fixture
def db():
    mock_db = MagicMock(spec=Database)
    mock_db.db_name = "personal_crm"
    mock_db.pool = MagicMock(name="pool")
    return mock_db


@pytest.fixture
def tracker(db):
    queries = QueryConfig(overdue_days=21, recent_limit=5, max_recent_limit=50)
    return RelationshipTracker(db, queries)


class TestCoerceContactId:
    def test_accepts_uuid_and_string(self):
        cid = uuid.uuid4()
        assert coerce_contact_id(cid) is cid
        assert coerce_contact_id(str(cid)) == cid

    @pytest.mark.parametrize("value", ["not-a-uuid", 42, None, ""])
    def test_rejects_malformed(self, value):
        with pytest.raises(InvalidArgumentError):
            coerce_contact_id(value)


async def test_requires_connected_pool(db):
    db.pool = None
    with pytest.raises(StoreUnavailableError, match="no active connection pool") as exc_info:
        await RelationshipTracker(db).list_contacts()
    assert exc_info.value.operation == "list_contacts"


async def test_list_overdue_uses_configured_default(tracker, db):
    with patch("rapport.service._engagement.contacts_overdue", new=AsyncMock(return_value=[])) as m:
        await tracker.list_overdue()
        await tracker.list_overdue(3)
    assert m.await_args_list[0].args == (db.pool, 21)
    assert m.await_args_list[1].args == (db.pool, 3)


async def test_recent_limit_default_and_cap(tracker, db):
    with patch("rapport.service._inter.interactions_recent", new=AsyncMock(return_value=[])) as m:
        await tracker.list_recent_interactions()
        await tracker.list_recent_interactions(500)
    assert m.await_args_list[0].args == (db.pool, 5)
    assert m.await_args_list[1].args == (db.pool, 50)


async def test_recent_limit_rejects_zero(tracker):
    with pytest.raises(InvalidArgumentError) as exc_info:
        await tracker.list_recent_interactions(0)
    assert exc_info.value.operation == "list_recent_interactions"


async def test_record_interaction_passes_fields(tracker, db):
    recorded = {"id": uuid.uuid4(), "contact_name": "Alice"}
    with patch(
        "rapport.service._inter.interaction_record", new=AsyncMock(return_value=recorded)
    ) as m:
        result = await tracker.record_interaction(
            "Alice", "phone_call", direction="outgoing", duration_seconds=60, subject="hi"
        )
    assert result is recorded
    assert m.await_args.args == (db.pool, "Alice", "phone_call")
    assert m.await_args.kwargs["direction"] == "outgoing"
    assert m.await_args.kwargs["duration_seconds"] == 60
    assert m.await_args.kwargs["occurred_at"] is None


async def test_not_found_stamped_with_operation(tracker):
    cid = uuid.uuid4()
    with patch(
        "rapport.service._engagement.contact_stats",
        new=AsyncMock(side_effect=NotFoundError(f"Contact {cid} not found")),
    ):
        with pytest.raises(NotFoundError) as exc_info:
            await tracker.get_contact_stats(cid)
    assert exc_info.value.operation == "get_contact_stats"
    assert exc_info.value.context == {"contact_id": str(cid)}


async def test_malformed_id_is_invalid_argument(tracker):
    with pytest.raises(InvalidArgumentError) as exc_info:
        await tracker.get_contact_details("abc")
    assert exc_info.value.operation == "get_contact_details"


async def test_unique_violation_translated(tracker):
    with patch(
        "rapport.service._contacts.contact_create",
        new=AsyncMock(side_effect=asyncpg.exceptions.UniqueViolationError("duplicate")),
    ):
        with pytest.raises(ConstraintViolationError) as exc_info:
            await tracker.create_contact("Alice")
    assert exc_info.value.operation == "create_contact"
    assert isinstance(exc_info.value.__cause__, asyncpg.exceptions.UniqueViolationError)


async def test_connection_loss_translated(tracker):
    with patch(
        "rapport.service._contacts.contact_list",
        new=AsyncMock(side_effect=ConnectionResetError("reset by peer")),
    ):
        with pytest.raises(StoreUnavailableError):
            await tracker.list_contacts()


async def test_goal_operations_coerce_ids(tracker, db):
    cid, gid = uuid.uuid4(), uuid.uuid4()
    with (
        patch("rapport.service._goals.goal_create", new=AsyncMock(return_value={})) as create,
        patch("rapport.service._goals.goal_mark_reached", new=AsyncMock(return_value={})) as mark,
    ):
        await tracker.create_goal(str(cid), 14, description="Biweekly")
        await tracker.mark_goal_reached(str(gid))
    assert create.await_args.args == (db.pool, cid, 14)
    assert create.await_args.kwargs == {"description": "Biweekly"}
    assert mark.await_args.args == (db.pool, gid, None)


@pytest.mark.parametrize(
    "exc",
    [
        asyncpg.exceptions.QueryCanceledError("canceling statement due to statement timeout"),
        asyncpg.exceptions.DeadlockDetectedError("deadlock detected"),
        asyncpg.exceptions.SerializationError("could not serialize access"),
    ],
)
async def test_transient_server_errors_are_store_unavailable(tracker, exc):
    with patch("rapport.service._contacts.contact_list", new=AsyncMock(side_effect=exc)):
        with pytest.raises(StoreUnavailableError) as exc_info:
            await tracker.list_contacts()
    assert exc_info.value.operation == "list_contacts"
    assert exc_info.value.__cause__ is exc


async def test_other_server_errors_are_typed(tracker):
    exc = asyncpg.exceptions.UndefinedTableError('relation "contacts" does not exist')
    with patch("rapport.service._contacts.contact_list", new=AsyncMock(side_effect=exc)):
        with pytest.raises(RapportError) as exc_info:
            await tracker.list_contacts()
    assert exc_info.value.operation == "list_contacts"
    assert exc_info.value.code == "INTERNAL_ERROR"
