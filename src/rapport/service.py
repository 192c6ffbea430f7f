"""RelationshipTracker: the caller-facing operations over an injected Database.

Wires the tool functions in ``rapport.tools`` to a single Database handle and
gives each operation a name: log events carry it, and every error raised out
of an operation is stamped with it (store-layer errors are also translated to
the rapport taxonomy on the way out).
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any

import asyncpg

from rapport.config import QueryConfig
from rapport.core.logging import operation_context
from rapport.db import Database
from rapport.errors import InvalidArgumentError, StoreUnavailableError, operation_errors
from rapport.schema import init_schema
from rapport.tools import contacts as _contacts
from rapport.tools import engagement as _engagement
from rapport.tools import goals as _goals
from rapport.tools import interaction_types as _types
from rapport.tools import interactions as _inter

logger = logging.getLogger(__name__)


def coerce_contact_id(value: Any, field: str = "contact_id") -> uuid.UUID:
    """Return *value* as a UUID, raising InvalidArgumentError when malformed."""
    if isinstance(value, uuid.UUID):
        return value
    if isinstance(value, str):
        try:
            return uuid.UUID(value.strip())
        except ValueError:
            pass
    raise InvalidArgumentError(f"{field} must be a UUID, got {value!r}")


class RelationshipTracker:
    """Personal CRM operations backed by one Database.

    The Database is injected rather than looked up globally; its pool must be
    connected before any operation runs.
    """

    def __init__(self, db: Database, queries: QueryConfig | None = None) -> None:
        self._db = db
        self.queries = queries or QueryConfig()

    def _get_pool(self) -> asyncpg.Pool:
        """Return the asyncpg pool, raising StoreUnavailableError if not connected."""
        if self._db.pool is None:
            raise StoreUnavailableError(
                f"Database '{self._db.db_name}' has no active connection pool"
            )
        return self._db.pool

    async def initialize(self) -> None:
        """Create the schema and seed the interaction-type catalog (idempotent)."""
        with operation_context("initialize"), operation_errors("initialize"):
            await init_schema(self._get_pool())

    # -- Reads -------------------------------------------------------------

    async def list_contacts(self) -> list[dict[str, Any]]:
        with operation_context("list_contacts"), operation_errors("list_contacts"):
            return await _contacts.contact_list(self._get_pool())

    async def get_contact_details(self, contact_id: uuid.UUID | str) -> dict[str, Any]:
        op = "get_contact_details"
        with operation_context(op), operation_errors(op, contact_id=str(contact_id)):
            return await _inter.contact_details(self._get_pool(), coerce_contact_id(contact_id))

    async def list_overdue(self, days: int | None = None) -> list[dict[str, Any]]:
        if days is None:
            days = self.queries.overdue_days
        with operation_context("list_overdue"), operation_errors("list_overdue", days=days):
            return await _engagement.contacts_overdue(self._get_pool(), days)

    async def list_recent_interactions(self, limit: int | None = None) -> list[dict[str, Any]]:
        """Most recent interactions across all contacts.

        Limits above ``queries.max_recent_limit`` are capped rather than rejected.
        """
        if limit is None:
            limit = self.queries.recent_limit
        op = "list_recent_interactions"
        with operation_context(op), operation_errors(op, limit=limit):
            limit = _inter.validate_limit(limit)
            if limit > self.queries.max_recent_limit:
                logger.debug("Capping recent limit %d to %d", limit, self.queries.max_recent_limit)
                limit = self.queries.max_recent_limit
            return await _inter.interactions_recent(self._get_pool(), limit)

    async def get_contact_stats(self, contact_id: uuid.UUID | str) -> dict[str, Any]:
        op = "get_contact_stats"
        with operation_context(op), operation_errors(op, contact_id=str(contact_id)):
            return await _engagement.contact_stats(self._get_pool(), coerce_contact_id(contact_id))

    async def list_interaction_types(self) -> list[dict[str, Any]]:
        op = "list_interaction_types"
        with operation_context(op), operation_errors(op):
            return await _types.interaction_types_list(self._get_pool())

    # -- Writes ------------------------------------------------------------

    async def record_interaction(
        self,
        contact_name: str,
        interaction_type: str,
        direction: str | None = None,
        duration_seconds: int | None = None,
        subject: str | None = None,
        notes: str | None = None,
        timestamp: datetime | None = None,
    ) -> dict[str, Any]:
        """Record an interaction, creating the contact if the name is new."""
        op = "record_interaction"
        with (
            operation_context(op),
            operation_errors(op, contact_name=contact_name, interaction_type=interaction_type),
        ):
            return await _inter.interaction_record(
                self._get_pool(),
                contact_name,
                interaction_type,
                direction=direction,
                duration_seconds=duration_seconds,
                subject=subject,
                notes=notes,
                occurred_at=timestamp,
            )

    async def create_contact(
        self,
        name: str,
        phone_number: str | None = None,
        email: str | None = None,
        relationship_type: str | None = None,
    ) -> dict[str, Any]:
        with operation_context("create_contact"), operation_errors("create_contact", name=name):
            return await _contacts.contact_create(
                self._get_pool(),
                name,
                phone_number=phone_number,
                email=email,
                relationship_type=relationship_type,
            )

    async def delete_contact(self, contact_id: uuid.UUID | str) -> None:
        op = "delete_contact"
        with operation_context(op), operation_errors(op, contact_id=str(contact_id)):
            await _contacts.contact_delete(self._get_pool(), coerce_contact_id(contact_id))

    async def create_goal(
        self,
        contact_id: uuid.UUID | str,
        frequency_days: int,
        description: str | None = None,
    ) -> dict[str, Any]:
        op = "create_goal"
        with operation_context(op), operation_errors(op, contact_id=str(contact_id)):
            return await _goals.goal_create(
                self._get_pool(),
                coerce_contact_id(contact_id),
                frequency_days,
                description=description,
            )

    async def list_goals(self, contact_id: uuid.UUID | str) -> list[dict[str, Any]]:
        op = "list_goals"
        with operation_context(op), operation_errors(op, contact_id=str(contact_id)):
            return await _goals.goal_list(self._get_pool(), coerce_contact_id(contact_id))

    async def mark_goal_reached(
        self,
        goal_id: uuid.UUID | str,
        reached_at: datetime | None = None,
    ) -> dict[str, Any]:
        op = "mark_goal_reached"
        with operation_context(op), operation_errors(op, goal_id=str(goal_id)):
            return await _goals.goal_mark_reached(
                self._get_pool(), coerce_contact_id(goal_id, "goal_id"), reached_at
            )
