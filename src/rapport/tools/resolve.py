"""Contact resolution: map a free-text name to a contact, minting one if absent.

Resolution is an atomic insert-or-fetch against the unique ``contacts.name``
index: the insert either claims the name or is a no-op, and the follow-up
select returns whichever row owns it. Two concurrent callers with the same
new name therefore end up with the same contact.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

import asyncpg

from rapport.tools.contacts import DEFAULT_RELATIONSHIP_TYPE, normalize_contact_name

logger = logging.getLogger(__name__)


async def contact_resolve(
    conn: asyncpg.Pool | asyncpg.Connection,
    name: str,
) -> dict[str, Any]:
    """Resolve *name* to a contact id, creating the contact when none exists.

    Returns ``{"id": UUID, "name": str, "created": bool}``. Existing contacts
    are never modified.
    """
    name = normalize_contact_name(name)

    created_id: uuid.UUID | None = await conn.fetchval(
        """
        INSERT INTO contacts (name, relationship_type)
        VALUES ($1, $2)
        ON CONFLICT (name) DO NOTHING
        RETURNING id
        """,
        name,
        DEFAULT_RELATIONSHIP_TYPE,
    )
    if created_id is not None:
        logger.info("Created contact %s for new name %r", created_id, name)
        return {"id": created_id, "name": name, "created": True}

    existing_id = await conn.fetchval("SELECT id FROM contacts WHERE name = $1", name)
    return {"id": existing_id, "name": name, "created": False}
