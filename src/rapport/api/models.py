"""Pydantic models for the rapport HTTP API.

Response shapes mirror the dicts returned by the tracker operations; request
models do light shape validation and leave semantic checks (known
interaction type, direction values) to the tracker so that the error taxonomy
stays in one place.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Structured error payload."""

    code: str
    message: str
    details: dict | None = None


class ErrorResponse(BaseModel):
    """Standard error response envelope."""

    error: ErrorDetail


class HealthResponse(BaseModel):
    status: str = "ok"


# ---------------------------------------------------------------------------
# Contacts
# ---------------------------------------------------------------------------


class Contact(BaseModel):
    """A person the user keeps in touch with."""

    id: UUID
    name: str
    phone_number: str | None = None
    email: str | None = None
    relationship_type: str = "unknown"
    last_interaction_date: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class OverdueContact(Contact):
    """Contact row from the overdue query; None days means never contacted."""

    days_since_contact: int | None = None


class ContactCreateRequest(BaseModel):
    name: str
    phone_number: str | None = None
    email: str | None = None
    relationship_type: str | None = None


# ---------------------------------------------------------------------------
# Interactions
# ---------------------------------------------------------------------------


class InteractionType(BaseModel):
    id: int
    type_name: str
    description: str | None = None


class Interaction(BaseModel):
    """One recorded interaction, as listed on a contact."""

    id: UUID
    contact_id: UUID
    type_name: str
    direction: str | None = None
    timestamp: datetime
    duration_seconds: int | None = None
    subject: str | None = None
    notes: str | None = None
    created_at: datetime | None = None


class RecentInteraction(Interaction):
    """Interaction joined with its contact name and type description."""

    contact_name: str
    type_description: str | None = None


class RecordedInteraction(Interaction):
    contact_name: str
    contact_created: bool = False


class ContactDetails(BaseModel):
    """A contact with its full interaction history, most recent first."""

    contact: Contact
    interactions: list[Interaction] = Field(default_factory=list)


class ContactStats(BaseModel):
    id: UUID
    name: str
    total_interactions: int
    outgoing_count: int
    incoming_count: int
    first_interaction: datetime | None = None
    last_interaction: datetime | None = None
    avg_days_between_interactions: float | None = None


class RecordInteractionRequest(BaseModel):
    """Body for ``POST /api/interactions``."""

    contact_name: str
    interaction_type: str
    direction: str | None = None
    duration_seconds: int | None = None
    subject: str | None = None
    notes: str | None = None
    timestamp: datetime | None = None


class RecordInteractionResponse(BaseModel):
    success: bool = True
    interaction: RecordedInteraction


# ---------------------------------------------------------------------------
# Goals
# ---------------------------------------------------------------------------


class Goal(BaseModel):
    id: UUID
    contact_id: UUID
    goal_description: str | None = None
    frequency_days: int
    last_reached_out_date: datetime | None = None
    created_at: datetime | None = None


class GoalCreateRequest(BaseModel):
    frequency_days: int
    description: str | None = None
