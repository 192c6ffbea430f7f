"""CRM schema DDL and the interaction-type catalog.

The same statements back the Alembic ``crm`` chain and :func:`init_schema`,
which tests and ``rapport init-db`` use to bootstrap a database directly.
Every statement is idempotent.
"""

from __future__ import annotations

import logging

import asyncpg

logger = logging.getLogger(__name__)

# Closed catalog of interaction types: (type_name, description).
INTERACTION_TYPES: tuple[tuple[str, str], ...] = (
    ("phone_call", "Voice call"),
    ("facetime_audio", "FaceTime audio call"),
    ("facetime_video", "FaceTime video call"),
    ("sms", "Text message"),
    ("imessage", "iMessage"),
    ("email", "Email"),
    ("calendar_meeting", "Calendar meeting"),
)

TABLE_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS contacts (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        name VARCHAR(255) NOT NULL,
        phone_number VARCHAR(20),
        email VARCHAR(255),
        relationship_type VARCHAR(50) NOT NULL DEFAULT 'unknown',
        last_interaction_date TIMESTAMPTZ,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS uq_contacts_name ON contacts (name)
    """,
    """
    CREATE TABLE IF NOT EXISTS interaction_types (
        id SERIAL PRIMARY KEY,
        type_name VARCHAR(50) UNIQUE NOT NULL,
        description TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS interactions (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        contact_id UUID NOT NULL REFERENCES contacts(id) ON DELETE CASCADE,
        interaction_type_id INTEGER NOT NULL REFERENCES interaction_types(id),
        direction VARCHAR(20) CHECK (direction IN ('incoming', 'outgoing')),
        timestamp TIMESTAMPTZ NOT NULL DEFAULT now(),
        duration_seconds INTEGER CHECK (duration_seconds >= 0),
        subject VARCHAR(255),
        notes TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_interactions_contact_id ON interactions (contact_id)
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_interactions_timestamp ON interactions (timestamp)
    """,
    """
    CREATE TABLE IF NOT EXISTS relationship_goals (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        contact_id UUID NOT NULL REFERENCES contacts(id) ON DELETE CASCADE,
        goal_description TEXT,
        frequency_days INTEGER CHECK (frequency_days > 0),
        last_reached_out_date TIMESTAMPTZ,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_relationship_goals_contact_id
        ON relationship_goals (contact_id)
    """,
)

DROP_STATEMENTS: tuple[str, ...] = (
    "DROP TABLE IF EXISTS relationship_goals",
    "DROP TABLE IF EXISTS interactions",
    "DROP TABLE IF EXISTS interaction_types",
    "DROP TABLE IF EXISTS contacts",
)

SEED_INTERACTION_TYPES_SQL = """
    INSERT INTO interaction_types (type_name, description)
    SELECT * FROM unnest($1::text[], $2::text[])
    ON CONFLICT (type_name) DO NOTHING
"""


def seed_interaction_types_statement() -> str:
    """Render the catalog seed as a literal INSERT (for Alembic's ``op.execute``)."""
    values = ",\n        ".join(
        f"('{name}', '{description}')" for name, description in INTERACTION_TYPES
    )
    return (
        "INSERT INTO interaction_types (type_name, description) VALUES\n"
        f"        {values}\n"
        "    ON CONFLICT (type_name) DO NOTHING"
    )


async def seed_interaction_types(pool: asyncpg.Pool | asyncpg.Connection) -> int:
    """Insert the interaction-type catalog; existing rows are left alone.

    Returns the number of rows inserted (0 on a re-run).
    """
    names = [name for name, _ in INTERACTION_TYPES]
    descriptions = [description for _, description in INTERACTION_TYPES]
    status = await pool.execute(SEED_INTERACTION_TYPES_SQL, names, descriptions)
    inserted = int(status.rsplit(" ", 1)[-1])
    if inserted:
        logger.info("Seeded %d interaction type(s)", inserted)
    return inserted


async def init_schema(pool: asyncpg.Pool) -> None:
    """Create all CRM tables and seed the interaction-type catalog."""
    async with pool.acquire() as conn:
        async with conn.transaction():
            for statement in TABLE_STATEMENTS:
                await conn.execute(statement)
            await seed_interaction_types(conn)
    logger.info("CRM schema ready")
