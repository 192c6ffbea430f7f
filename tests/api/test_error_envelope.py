"""Tests for API error handling middleware."""

from __future__ import annotations

from unittest.mock import MagicMock

import httpx
import pytest
from fastapi import FastAPI

from rapport.api.app import create_app
from rapport.api.middleware import status_for
from rapport.api.models import ErrorResponse
from rapport.db import Database
from rapport.errors import (
    ConstraintViolationError,
    InvalidArgumentError,
    NotFoundError,
    RapportError,
    StoreUnavailableError,
    UnknownInteractionTypeError,
)
from rapport.service import RelationshipTracker

pytestmark = pytest.mark.unit


@pytest.fixture
def app() -> FastAPI:
    app = create_app(tracker=MagicMock(spec=RelationshipTracker))

    @app.get("/api/test/invalid")
    async def raise_invalid():
        raise InvalidArgumentError("limit must be a positive integer", operation="recent")

    @app.get("/api/test/unknown-type")
    async def raise_unknown_type():
        raise UnknownInteractionTypeError("fax", ["email"])

    @app.get("/api/test/not-found")
    async def raise_not_found():
        raise NotFoundError("Contact 1 not found")

    @app.get("/api/test/constraint")
    async def raise_constraint():
        raise ConstraintViolationError("Constraint violated: uq_contacts_name")

    @app.get("/api/test/unavailable")
    async def raise_unavailable():
        raise StoreUnavailableError("Store unavailable: refused")

    @app.get("/api/test/internal")
    async def raise_internal():
        raise RuntimeError("password=hunter2")

    return app


async def _get(app: FastAPI, path: str) -> httpx.Response:
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://test"
    ) as client:
        return await client.get(path)


@pytest.mark.parametrize(
    ("path", "status", "code"),
    [
        ("/api/test/invalid", 400, "VALIDATION_ERROR"),
        ("/api/test/unknown-type", 400, "UNKNOWN_INTERACTION_TYPE"),
        ("/api/test/not-found", 404, "NOT_FOUND"),
        ("/api/test/constraint", 409, "CONSTRAINT_VIOLATION"),
        ("/api/test/unavailable", 503, "STORE_UNAVAILABLE"),
        ("/api/test/internal", 500, "INTERNAL_ERROR"),
    ],
)
async def test_status_and_code(app, path, status, code):
    resp = await _get(app, path)
    assert resp.status_code == status
    parsed = ErrorResponse.model_validate(resp.json())
    assert parsed.error.code == code


async def test_message_excludes_operation_prefix(app):
    resp = await _get(app, "/api/test/invalid")
    assert resp.json()["error"]["message"] == "limit must be a positive integer"


async def test_unknown_type_details(app):
    resp = await _get(app, "/api/test/unknown-type")
    assert resp.json()["error"]["details"] == {"type_name": "fax", "valid_types": ["email"]}


async def test_generic_message_no_leak(app):
    resp = await _get(app, "/api/test/internal")
    assert "hunter2" not in resp.text
    assert resp.json()["error"]["message"] == "Internal server error"


def test_unmapped_rapport_error_is_500():
    assert status_for(RapportError("odd")) == 500


async def test_unconnected_store_is_503():
    db = MagicMock(spec=Database)
    db.db_name = "personal_crm"
    db.pool = None
    app = create_app(tracker=RelationshipTracker(db))
    resp = await _get(app, "/api/contacts")
    assert resp.status_code == 503
    assert resp.json()["error"]["code"] == "STORE_UNAVAILABLE"
