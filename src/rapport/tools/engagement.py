"""Engagement signals: overdue contacts and per-contact interaction statistics.

The store returns raw timestamps and counts; the day arithmetic lives here in
plain Python so the edge cases (never contacted, a single interaction) are
explicit and testable without a database.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

import asyncpg

from rapport.errors import InvalidArgumentError, NotFoundError
from rapport.tools.contacts import CONTACT_COLUMNS, _parse_contact

DEFAULT_OVERDUE_DAYS = 30

_SECONDS_PER_DAY = 86400.0


def days_since(last: datetime | None, now: datetime) -> int | None:
    """Whole days elapsed from *last* to *now*; None when never contacted."""
    if last is None:
        return None
    elapsed = (now - last).total_seconds() / _SECONDS_PER_DAY
    return max(0, int(elapsed))


def average_cadence_days(
    first: datetime | None,
    last: datetime | None,
    count: int,
) -> float | None:
    """Mean days between consecutive interactions.

    Defined as the first-to-last span divided by ``count - 1``. There is no
    interval to average when ``count <= 1``, so the result is None rather
    than zero.
    """
    if count <= 1 or first is None or last is None:
        return None
    span_days = (last - first).total_seconds() / _SECONDS_PER_DAY
    return round(span_days / (count - 1), 1)


def validate_threshold_days(days: Any) -> int:
    """Return *days* if it is a non-negative integer, else raise InvalidArgumentError."""
    if isinstance(days, bool) or not isinstance(days, int) or days < 0:
        raise InvalidArgumentError(f"days must be a non-negative integer, got {days!r}")
    return days


async def contacts_overdue(
    pool: asyncpg.Pool,
    days: int = DEFAULT_OVERDUE_DAYS,
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    """Return contacts not interacted with for more than *days* days.

    Contacts that were never contacted are always included and come first;
    the rest follow oldest-contact first. Each row carries
    ``days_since_contact`` (None for never-contacted contacts).
    """
    days = validate_threshold_days(days)
    now = now or datetime.now(UTC)
    cutoff = now - timedelta(days=days)
    rows = await pool.fetch(
        f"""
        SELECT {CONTACT_COLUMNS} FROM contacts
        WHERE last_interaction_date IS NULL OR last_interaction_date < $1
        ORDER BY last_interaction_date ASC NULLS FIRST, name
        """,
        cutoff,
    )
    results = []
    for row in rows:
        contact = _parse_contact(row)
        contact["days_since_contact"] = days_since(contact["last_interaction_date"], now)
        results.append(contact)
    return results


async def contact_stats(pool: asyncpg.Pool, contact_id: uuid.UUID) -> dict[str, Any]:
    """Summarise a contact's interaction history.

    Returns name, total/outgoing/incoming counts, first and last interaction
    timestamps, and ``avg_days_between_interactions`` (None with fewer than
    two interactions).
    """
    row = await pool.fetchrow(
        """
        SELECT
            c.id,
            c.name,
            COUNT(i.id) AS total_interactions,
            COUNT(i.id) FILTER (WHERE i.direction = 'outgoing') AS outgoing_count,
            COUNT(i.id) FILTER (WHERE i.direction = 'incoming') AS incoming_count,
            MIN(i.timestamp) AS first_interaction,
            MAX(i.timestamp) AS last_interaction
        FROM contacts c
        LEFT JOIN interactions i ON c.id = i.contact_id
        WHERE c.id = $1
        GROUP BY c.id, c.name
        """,
        contact_id,
    )
    if row is None:
        raise NotFoundError(f"Contact {contact_id} not found")
    stats = dict(row)
    stats["avg_days_between_interactions"] = average_cadence_days(
        stats["first_interaction"],
        stats["last_interaction"],
        stats["total_interactions"],
    )
    return stats
