"""Relationship tracker tools: contacts, interactions, and engagement queries.

Every function takes an asyncpg pool (or connection) as its first argument.
"""

from rapport.tools.contacts import (
    contact_create,
    contact_delete,
    contact_find_by_name,
    contact_get,
    contact_list,
    contact_lock,
    contact_refresh_last_interaction,
)
from rapport.tools.engagement import (
    average_cadence_days,
    contact_stats,
    contacts_overdue,
    days_since,
)
from rapport.tools.goals import (
    goal_create,
    goal_list,
    goal_mark_reached,
)
from rapport.tools.interaction_types import (
    interaction_type_id,
    interaction_types_list,
)
from rapport.tools.interactions import (
    contact_details,
    interaction_list,
    interaction_record,
    interactions_recent,
)
from rapport.tools.resolve import contact_resolve

__all__ = [
    "average_cadence_days",
    "contact_create",
    "contact_delete",
    "contact_details",
    "contact_find_by_name",
    "contact_get",
    "contact_list",
    "contact_lock",
    "contact_refresh_last_interaction",
    "contact_resolve",
    "contact_stats",
    "contacts_overdue",
    "days_since",
    "goal_create",
    "goal_list",
    "goal_mark_reached",
    "interaction_list",
    "interaction_record",
    "interaction_type_id",
    "interaction_types_list",
    "interactions_recent",
]
