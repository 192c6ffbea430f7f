"""Relationship tracker endpoints.

Thin HTTP layer over :class:`rapport.service.RelationshipTracker`. Tracker
errors propagate to the handlers in :mod:`rapport.api.middleware`, which
render them in the standard error envelope.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response

from rapport.api.models import (
    Contact,
    ContactCreateRequest,
    ContactDetails,
    ContactStats,
    Goal,
    GoalCreateRequest,
    HealthResponse,
    InteractionType,
    OverdueContact,
    RecentInteraction,
    RecordInteractionRequest,
    RecordInteractionResponse,
)
from rapport.service import RelationshipTracker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["crm"])


def get_tracker() -> RelationshipTracker:
    """Dependency stub: overridden at app startup or in tests."""
    raise RuntimeError("RelationshipTracker not initialized")


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse()


# ---------------------------------------------------------------------------
# Contacts
# ---------------------------------------------------------------------------


@router.get("/contacts", response_model=list[Contact])
async def list_contacts(tracker: RelationshipTracker = Depends(get_tracker)) -> list[dict]:
    """All contacts, most recently contacted first."""
    return await tracker.list_contacts()


@router.post("/contacts", response_model=Contact, status_code=201)
async def create_contact(
    body: ContactCreateRequest,
    tracker: RelationshipTracker = Depends(get_tracker),
) -> dict:
    return await tracker.create_contact(
        body.name,
        phone_number=body.phone_number,
        email=body.email,
        relationship_type=body.relationship_type,
    )


@router.get("/contacts/overdue/{days}", response_model=list[OverdueContact])
async def list_overdue(
    days: int,
    tracker: RelationshipTracker = Depends(get_tracker),
) -> list[dict]:
    """Contacts not reached for more than *days* days; never-contacted first."""
    return await tracker.list_overdue(days)


@router.get("/contacts/{contact_id}", response_model=ContactDetails)
async def get_contact(
    contact_id: str,
    tracker: RelationshipTracker = Depends(get_tracker),
) -> dict:
    return await tracker.get_contact_details(contact_id)


@router.get("/contacts/{contact_id}/stats", response_model=ContactStats)
async def get_contact_stats(
    contact_id: str,
    tracker: RelationshipTracker = Depends(get_tracker),
) -> dict:
    return await tracker.get_contact_stats(contact_id)


@router.delete("/contacts/{contact_id}", status_code=204)
async def delete_contact(
    contact_id: str,
    tracker: RelationshipTracker = Depends(get_tracker),
) -> Response:
    """Delete a contact together with its interactions and goals."""
    await tracker.delete_contact(contact_id)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Goals
# ---------------------------------------------------------------------------


@router.get("/contacts/{contact_id}/goals", response_model=list[Goal])
async def list_goals(
    contact_id: str,
    tracker: RelationshipTracker = Depends(get_tracker),
) -> list[dict]:
    return await tracker.list_goals(contact_id)


@router.post("/contacts/{contact_id}/goals", response_model=Goal, status_code=201)
async def create_goal(
    contact_id: str,
    body: GoalCreateRequest,
    tracker: RelationshipTracker = Depends(get_tracker),
) -> dict:
    return await tracker.create_goal(
        contact_id, body.frequency_days, description=body.description
    )


@router.post("/goals/{goal_id}/reached", response_model=Goal)
async def mark_goal_reached(
    goal_id: str,
    tracker: RelationshipTracker = Depends(get_tracker),
) -> dict:
    return await tracker.mark_goal_reached(goal_id)


# ---------------------------------------------------------------------------
# Interactions
# ---------------------------------------------------------------------------


@router.get("/interactions/recent/{limit}", response_model=list[RecentInteraction])
async def list_recent_interactions(
    limit: int,
    tracker: RelationshipTracker = Depends(get_tracker),
) -> list[dict]:
    return await tracker.list_recent_interactions(limit)


@router.get("/interaction-types", response_model=list[InteractionType])
async def list_interaction_types(
    tracker: RelationshipTracker = Depends(get_tracker),
) -> list[dict]:
    return await tracker.list_interaction_types()


@router.post("/interactions", response_model=RecordInteractionResponse, status_code=201)
async def record_interaction(
    body: RecordInteractionRequest,
    tracker: RelationshipTracker = Depends(get_tracker),
) -> RecordInteractionResponse:
    """Record an interaction; an unseen contact name creates the contact."""
    interaction = await tracker.record_interaction(
        body.contact_name,
        body.interaction_type,
        direction=body.direction,
        duration_seconds=body.duration_seconds,
        subject=body.subject,
        notes=body.notes,
        timestamp=body.timestamp,
    )
    return RecordInteractionResponse(success=True, interaction=interaction)
