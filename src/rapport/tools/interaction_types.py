"""Interaction-type catalog lookups."""

from __future__ import annotations

from typing import Any

import asyncpg

from rapport.errors import InvalidArgumentError, UnknownInteractionTypeError


async def interaction_types_list(
    pool: asyncpg.Pool | asyncpg.Connection,
) -> list[dict[str, Any]]:
    """List the interaction-type catalog ordered by id."""
    rows = await pool.fetch("SELECT id, type_name, description FROM interaction_types ORDER BY id")
    return [dict(row) for row in rows]


async def interaction_type_id(
    conn: asyncpg.Pool | asyncpg.Connection,
    type_name: str,
) -> int:
    """Return the catalog id for *type_name*.

    Matching is exact. Raises UnknownInteractionTypeError listing the valid
    names when there is no match.
    """
    if not isinstance(type_name, str) or not type_name.strip():
        raise InvalidArgumentError("interaction_type must be a non-empty string")
    type_id = await conn.fetchval(
        "SELECT id FROM interaction_types WHERE type_name = $1",
        type_name,
    )
    if type_id is None:
        valid = [row["type_name"] for row in await interaction_types_list(conn)]
        raise UnknownInteractionTypeError(type_name, valid)
    return type_id
