"""Demo dataset for local development.

Ten contacts spread across family, friends and colleagues, with 26
interactions placed 2 to 120 days before *now*. Lisa Tran has no
interactions and so shows up in every overdue query.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

import asyncpg

from rapport.tools.contacts import CONTACT_COLUMNS

logger = logging.getLogger(__name__)

DEMO_CONTACTS: tuple[tuple[str, str, str | None, str | None], ...] = (
    # (name, relationship type, phone number, email)
    ("Mom", "family", "555-0101", None),
    ("Dad", "family", "555-0102", None),
    ("Jake Sullivan", "friend", "555-0201", None),
    ("Priya Nair", "friend", "555-0202", None),
    ("Tom Reyes", "friend", "555-0203", None),
    ("Sarah Chen", "colleague", None, "sarah.chen@work.com"),
    ("Marcus Webb", "colleague", None, "marcus@work.com"),
    ("Dana Park", "friend", "555-0204", None),
    ("Uncle Rob", "family", "555-0103", None),
    ("Lisa Tran", "friend", "555-0205", None),
)

# (contact name, interaction type, direction, days ago, duration seconds)
DEMO_INTERACTIONS: tuple[tuple[str, str, str, int, int | None], ...] = (
    ("Mom", "phone_call", "incoming", 3, 900),
    ("Mom", "phone_call", "outgoing", 10, 1200),
    ("Mom", "imessage", "incoming", 12, None),
    ("Mom", "phone_call", "outgoing", 24, 600),
    ("Dad", "phone_call", "outgoing", 8, 480),
    ("Dad", "facetime_video", "outgoing", 35, 1800),
    ("Dad", "phone_call", "incoming", 62, 300),
    ("Jake Sullivan", "phone_call", "outgoing", 2, 1500),
    ("Jake Sullivan", "sms", "outgoing", 5, None),
    ("Jake Sullivan", "phone_call", "incoming", 15, 900),
    ("Jake Sullivan", "phone_call", "outgoing", 45, 600),
    ("Priya Nair", "imessage", "incoming", 18, None),
    ("Priya Nair", "phone_call", "outgoing", 32, 750),
    ("Priya Nair", "calendar_meeting", "outgoing", 55, 3600),
    ("Tom Reyes", "phone_call", "outgoing", 47, 420),
    ("Tom Reyes", "sms", "incoming", 60, None),
    ("Tom Reyes", "phone_call", "incoming", 90, 900),
    ("Sarah Chen", "email", "outgoing", 5, None),
    ("Sarah Chen", "calendar_meeting", "outgoing", 12, 3600),
    ("Sarah Chen", "email", "incoming", 20, None),
    ("Marcus Webb", "email", "incoming", 38, None),
    ("Marcus Webb", "calendar_meeting", "outgoing", 50, 5400),
    ("Dana Park", "phone_call", "incoming", 55, 600),
    ("Dana Park", "imessage", "outgoing", 70, None),
    ("Uncle Rob", "phone_call", "outgoing", 80, 1200),
    ("Uncle Rob", "phone_call", "outgoing", 120, 900),
)


async def seed_demo_data(pool: asyncpg.Pool, now: datetime | None = None) -> dict[str, Any]:
    """Load the demo contacts and interactions in one transaction.

    Contacts that already exist (matched by name) are reused. Interactions
    are always appended, so running this twice doubles the history. Every
    contact's ``last_interaction_date`` is recomputed at the end.

    Returns counts of contacts created and interactions inserted.
    """
    now = now or datetime.now(UTC)
    created = 0
    async with pool.acquire() as conn:
        async with conn.transaction():
            type_ids = {
                row["type_name"]: row["id"]
                for row in await conn.fetch("SELECT id, type_name FROM interaction_types")
            }
            contact_ids: dict[str, Any] = {}
            for name, relationship_type, phone_number, email in DEMO_CONTACTS:
                row = await conn.fetchrow(
                    """
                    INSERT INTO contacts (name, relationship_type, phone_number, email)
                    VALUES ($1, $2, $3, $4)
                    ON CONFLICT (name) DO NOTHING
                    RETURNING id
                    """,
                    name,
                    relationship_type,
                    phone_number,
                    email,
                )
                if row is None:
                    row = await conn.fetchrow("SELECT id FROM contacts WHERE name = $1", name)
                    logger.debug("Contact already exists: %s", name)
                else:
                    created += 1
                contact_ids[name] = row["id"]

            await conn.executemany(
                """
                INSERT INTO interactions
                    (contact_id, interaction_type_id, direction, timestamp, duration_seconds)
                VALUES ($1, $2, $3, $4, $5)
                """,
                [
                    (
                        contact_ids[name],
                        type_ids[type_name],
                        direction,
                        now - timedelta(days=days_ago),
                        duration,
                    )
                    for name, type_name, direction, days_ago, duration in DEMO_INTERACTIONS
                ],
            )

            await conn.execute(
                """
                UPDATE contacts c
                SET last_interaction_date = (
                        SELECT MAX(timestamp) FROM interactions WHERE contact_id = c.id
                    ),
                    updated_at = now()
                """
            )

    logger.info(
        "Seeded demo data: %d new contact(s), %d interaction(s)",
        created,
        len(DEMO_INTERACTIONS),
    )
    return {"contacts_created": created, "interactions_inserted": len(DEMO_INTERACTIONS)}


async def demo_summary(pool: asyncpg.Pool) -> list[dict[str, Any]]:
    """Contacts with interaction counts, most recently contacted first."""
    rows = await pool.fetch(
        f"""
        SELECT {", ".join("c." + col.strip() for col in CONTACT_COLUMNS.split(","))},
               COUNT(i.id) AS interaction_count
        FROM contacts c
        LEFT JOIN interactions i ON c.id = i.contact_id
        GROUP BY c.id
        ORDER BY c.last_interaction_date DESC NULLS LAST, c.name
        """
    )
    return [dict(row) for row in rows]
