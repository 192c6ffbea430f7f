"""Contact CRUD: create, get, list, find by name, and delete contacts."""

from __future__ import annotations

import logging
import uuid
from typing import Any

import asyncpg

from rapport.errors import InvalidArgumentError, NotFoundError

logger = logging.getLogger(__name__)

DEFAULT_RELATIONSHIP_TYPE = "unknown"

# Column widths of the contacts table
NAME_MAX_LENGTH = 255
PHONE_MAX_LENGTH = 20
EMAIL_MAX_LENGTH = 255
RELATIONSHIP_TYPE_MAX_LENGTH = 50

CONTACT_COLUMNS = (
    "id, name, phone_number, email, relationship_type, "
    "last_interaction_date, created_at, updated_at"
)


def _parse_contact(row: asyncpg.Record) -> dict[str, Any]:
    """Convert a contact row to a plain dict."""
    return dict(row)


def normalize_contact_name(name: Any) -> str:
    """Return *name* trimmed, rejecting missing, blank or over-long names."""
    if not isinstance(name, str) or not name.strip():
        raise InvalidArgumentError("contact_name must be a non-empty string")
    name = name.strip()
    if len(name) > NAME_MAX_LENGTH:
        raise InvalidArgumentError(f"contact_name must be at most {NAME_MAX_LENGTH} characters")
    return name


def _optional_text(value: Any, field: str, max_length: int) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidArgumentError(f"{field} must be a string")
    value = value.strip()
    if len(value) > max_length:
        raise InvalidArgumentError(f"{field} must be at most {max_length} characters")
    return value or None


async def contact_create(
    pool: asyncpg.Pool | asyncpg.Connection,
    name: str,
    phone_number: str | None = None,
    email: str | None = None,
    relationship_type: str | None = None,
) -> dict[str, Any]:
    """Create a contact explicitly.

    Names are unique; creating a second contact with the same name raises a
    unique violation from the store.
    """
    name = normalize_contact_name(name)
    phone_number = _optional_text(phone_number, "phone_number", PHONE_MAX_LENGTH)
    email = _optional_text(email, "email", EMAIL_MAX_LENGTH)
    relationship_type = _optional_text(
        relationship_type, "relationship_type", RELATIONSHIP_TYPE_MAX_LENGTH
    )
    row = await pool.fetchrow(
        f"""
        INSERT INTO contacts (name, phone_number, email, relationship_type)
        VALUES ($1, $2, $3, $4)
        RETURNING {CONTACT_COLUMNS}
        """,
        name,
        phone_number,
        email,
        relationship_type or DEFAULT_RELATIONSHIP_TYPE,
    )
    logger.info("Created contact %s (%s)", row["id"], name)
    return _parse_contact(row)


async def contact_get(
    pool: asyncpg.Pool | asyncpg.Connection, contact_id: uuid.UUID
) -> dict[str, Any]:
    """Get a contact by ID."""
    row = await pool.fetchrow(
        f"SELECT {CONTACT_COLUMNS} FROM contacts WHERE id = $1",
        contact_id,
    )
    if row is None:
        raise NotFoundError(f"Contact {contact_id} not found")
    return _parse_contact(row)


async def contact_find_by_name(
    pool: asyncpg.Pool | asyncpg.Connection, name: str
) -> dict[str, Any] | None:
    """Return the contact with exactly *name*, or None."""
    row = await pool.fetchrow(
        f"SELECT {CONTACT_COLUMNS} FROM contacts WHERE name = $1",
        name,
    )
    return _parse_contact(row) if row is not None else None


async def contact_list(pool: asyncpg.Pool) -> list[dict[str, Any]]:
    """List all contacts, most recently contacted first.

    Contacts that were never contacted sort last.
    """
    rows = await pool.fetch(
        f"""
        SELECT {CONTACT_COLUMNS} FROM contacts
        ORDER BY last_interaction_date DESC NULLS LAST, name
        """
    )
    return [_parse_contact(row) for row in rows]


async def contact_delete(pool: asyncpg.Pool, contact_id: uuid.UUID) -> None:
    """Delete a contact; its interactions and goals go with it."""
    deleted = await pool.fetchval(
        "DELETE FROM contacts WHERE id = $1 RETURNING id",
        contact_id,
    )
    if deleted is None:
        raise NotFoundError(f"Contact {contact_id} not found")
    logger.info("Deleted contact %s", contact_id)


async def contact_lock(conn: asyncpg.Connection, contact_id: uuid.UUID) -> None:
    """Row-lock the contact until the surrounding transaction ends.

    Writers hold this before inserting interactions, so concurrent recorders
    for one contact run one after another and each recompute of
    ``last_interaction_date`` sees every interaction committed before it.
    """
    locked = await conn.fetchval("SELECT id FROM contacts WHERE id = $1 FOR UPDATE", contact_id)
    if locked is None:
        raise NotFoundError(f"Contact {contact_id} not found")


async def contact_refresh_last_interaction(
    conn: asyncpg.Pool | asyncpg.Connection, contact_id: uuid.UUID
) -> dict[str, Any]:
    """Recompute the derived last-interaction timestamp for one contact.

    The value is the latest occurrence timestamp among the contact's
    interactions (NULL when it has none), so backdated entries never move it
    forward past a newer interaction.
    """
    row = await conn.fetchrow(
        f"""
        UPDATE contacts
        SET last_interaction_date = (
                SELECT MAX(timestamp) FROM interactions WHERE contact_id = $1
            ),
            updated_at = now()
        WHERE id = $1
        RETURNING {CONTACT_COLUMNS}
        """,
        contact_id,
    )
    if row is None:
        raise NotFoundError(f"Contact {contact_id} not found")
    return _parse_contact(row)
