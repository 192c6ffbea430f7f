"""Relationship goals: per-contact target cadence records.

Goals are bookkeeping only: nothing here evaluates whether a goal is met.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import Any

import asyncpg

from rapport.errors import InvalidArgumentError, NotFoundError
from rapport.tools.contacts import contact_get

logger = logging.getLogger(__name__)


async def goal_create(
    pool: asyncpg.Pool,
    contact_id: uuid.UUID,
    frequency_days: int,
    description: str | None = None,
) -> dict[str, Any]:
    """Create a stay-in-touch goal for a contact."""
    if isinstance(frequency_days, bool) or not isinstance(frequency_days, int):
        raise InvalidArgumentError("frequency_days must be an integer")
    if frequency_days <= 0:
        raise InvalidArgumentError("frequency_days must be > 0")
    await contact_get(pool, contact_id)
    row = await pool.fetchrow(
        """
        INSERT INTO relationship_goals (contact_id, goal_description, frequency_days)
        VALUES ($1, $2, $3)
        RETURNING *
        """,
        contact_id,
        description,
        frequency_days,
    )
    logger.info(
        "Created goal %s for contact %s every %d days", row["id"], contact_id, frequency_days
    )
    return dict(row)


async def goal_list(pool: asyncpg.Pool, contact_id: uuid.UUID) -> list[dict[str, Any]]:
    """List a contact's goals, oldest first."""
    await contact_get(pool, contact_id)
    rows = await pool.fetch(
        """
        SELECT * FROM relationship_goals
        WHERE contact_id = $1
        ORDER BY created_at, id
        """,
        contact_id,
    )
    return [dict(row) for row in rows]


async def goal_mark_reached(
    pool: asyncpg.Pool,
    goal_id: uuid.UUID,
    reached_at: datetime | None = None,
) -> dict[str, Any]:
    """Record when the user last reached out for a goal."""
    row = await pool.fetchrow(
        """
        UPDATE relationship_goals SET last_reached_out_date = $2
        WHERE id = $1
        RETURNING *
        """,
        goal_id,
        reached_at or datetime.now(UTC),
    )
    if row is None:
        raise NotFoundError(f"Goal {goal_id} not found")
    return dict(row)
