"""Interactions: record interactions against contacts and read them back."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import Any

import asyncpg

from rapport.errors import InvalidArgumentError
from rapport.tools.contacts import (
    contact_get,
    contact_lock,
    contact_refresh_last_interaction,
    normalize_contact_name,
)
from rapport.tools.interaction_types import interaction_type_id
from rapport.tools.resolve import contact_resolve

logger = logging.getLogger(__name__)

VALID_DIRECTIONS = ("incoming", "outgoing")
DEFAULT_RECENT_LIMIT = 10

_SUBJECT_MAX_LENGTH = 255


def _validate_direction(direction: Any) -> str | None:
    if direction is None:
        return None
    if not isinstance(direction, str):
        raise InvalidArgumentError(
            f"Invalid direction {direction!r}. Must be one of {VALID_DIRECTIONS}"
        )
    normalized = direction.strip().lower()
    if not normalized:
        return None
    if normalized not in VALID_DIRECTIONS:
        raise InvalidArgumentError(
            f"Invalid direction '{direction}'. Must be one of {VALID_DIRECTIONS}"
        )
    return normalized


def _validate_duration(duration_seconds: Any) -> int | None:
    if duration_seconds is None:
        return None
    if isinstance(duration_seconds, bool) or not isinstance(duration_seconds, int):
        raise InvalidArgumentError("duration_seconds must be an integer")
    if duration_seconds < 0:
        raise InvalidArgumentError("duration_seconds must be >= 0")
    return duration_seconds


def _validate_subject(subject: Any) -> str | None:
    if subject is None:
        return None
    if not isinstance(subject, str):
        raise InvalidArgumentError("subject must be a string")
    if len(subject) > _SUBJECT_MAX_LENGTH:
        raise InvalidArgumentError(f"subject must be at most {_SUBJECT_MAX_LENGTH} characters")
    return subject or None


def _validate_occurred_at(occurred_at: Any) -> datetime | None:
    if occurred_at is None:
        return None
    if not isinstance(occurred_at, datetime):
        raise InvalidArgumentError("timestamp must be a datetime")
    if occurred_at.tzinfo is None:
        # Naive timestamps are taken as UTC
        return occurred_at.replace(tzinfo=UTC)
    return occurred_at


def validate_limit(limit: Any) -> int:
    """Return *limit* if it is a positive integer, else raise InvalidArgumentError."""
    if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
        raise InvalidArgumentError(f"limit must be a positive integer, got {limit!r}")
    return limit


async def interaction_record(
    pool: asyncpg.Pool,
    contact_name: str,
    interaction_type: str,
    direction: str | None = None,
    duration_seconds: int | None = None,
    subject: str | None = None,
    notes: str | None = None,
    occurred_at: datetime | None = None,
) -> dict[str, Any]:
    """Record one interaction, creating the contact if the name is new.

    Arguments are validated before the transaction opens. Inside a single
    transaction the contact is resolved and row-locked, the type looked up,
    the row inserted, and the contact's last-interaction timestamp
    recomputed. The lock serialises concurrent recorders for one contact. Any
    failure rolls the whole unit back, including a just-created contact.
    """
    if not isinstance(interaction_type, str) or not interaction_type.strip():
        raise InvalidArgumentError("interaction_type must be a non-empty string")
    contact_name = normalize_contact_name(contact_name)
    if notes is not None and not isinstance(notes, str):
        raise InvalidArgumentError("notes must be a string")
    direction = _validate_direction(direction)
    duration_seconds = _validate_duration(duration_seconds)
    subject = _validate_subject(subject)
    occurred_at = _validate_occurred_at(occurred_at)

    async with pool.acquire() as conn:
        async with conn.transaction():
            contact = await contact_resolve(conn, contact_name)
            await contact_lock(conn, contact["id"])
            type_id = await interaction_type_id(conn, interaction_type)
            row = await conn.fetchrow(
                """
                INSERT INTO interactions
                    (contact_id, interaction_type_id, direction, timestamp,
                     duration_seconds, subject, notes)
                VALUES ($1, $2, $3, COALESCE($4, now()), $5, $6, $7)
                RETURNING *
                """,
                contact["id"],
                type_id,
                direction,
                occurred_at,
                duration_seconds,
                subject,
                notes or None,
            )
            await contact_refresh_last_interaction(conn, contact["id"])

    result = dict(row)
    result["contact_name"] = contact["name"]
    result["type_name"] = interaction_type
    result["contact_created"] = contact["created"]
    logger.info(
        "Logged %r interaction with %s (direction=%s, contact_created=%s)",
        interaction_type,
        contact["name"],
        direction,
        contact["created"],
    )
    return result


async def interaction_list(
    pool: asyncpg.Pool,
    contact_id: uuid.UUID,
) -> list[dict[str, Any]]:
    """List a contact's interactions, most recent first."""
    rows = await pool.fetch(
        """
        SELECT i.id, i.contact_id, i.timestamp, i.direction, i.duration_seconds,
               i.subject, i.notes, i.created_at, it.type_name
        FROM interactions i
        JOIN interaction_types it ON i.interaction_type_id = it.id
        WHERE i.contact_id = $1
        ORDER BY i.timestamp DESC, i.created_at DESC
        """,
        contact_id,
    )
    return [dict(row) for row in rows]


async def contact_details(pool: asyncpg.Pool, contact_id: uuid.UUID) -> dict[str, Any]:
    """Return a contact together with its full interaction history."""
    contact = await contact_get(pool, contact_id)
    interactions = await interaction_list(pool, contact_id)
    return {"contact": contact, "interactions": interactions}


async def interactions_recent(
    pool: asyncpg.Pool,
    limit: int = DEFAULT_RECENT_LIMIT,
) -> list[dict[str, Any]]:
    """Return the *limit* most recent interactions across all contacts.

    Each row carries the owning contact's name and the type's name and
    description.
    """
    limit = validate_limit(limit)
    rows = await pool.fetch(
        """
        SELECT i.id, i.contact_id, i.timestamp, i.direction, i.duration_seconds,
               i.subject, i.notes, i.created_at,
               c.name AS contact_name,
               it.type_name,
               it.description AS type_description
        FROM interactions i
        JOIN contacts c ON i.contact_id = c.id
        JOIN interaction_types it ON i.interaction_type_id = it.id
        ORDER BY i.timestamp DESC, i.created_at DESC
        LIMIT $1
        """,
        limit,
    )
    return [dict(row) for row in rows]
