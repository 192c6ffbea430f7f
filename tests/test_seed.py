"""Integration tests for the demo dataset loader."""

from __future__ import annotations

import shutil
from datetime import UTC, datetime

import pytest

from rapport.seed import DEMO_CONTACTS, DEMO_INTERACTIONS, demo_summary, seed_demo_data
from rapport.tools import contact_find_by_name, contacts_overdue

docker_available = shutil.which("docker") is not None
pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(not docker_available, reason="Docker not available"),
]

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=UTC)


def test_dataset_shape():
    assert len(DEMO_CONTACTS) == 10
    assert len(DEMO_INTERACTIONS) == 26
    names = {name for name, *_ in DEMO_CONTACTS}
    assert {name for name, *_ in DEMO_INTERACTIONS} == names - {"Lisa Tran"}


async def test_seed_loads_contacts_and_interactions(crm_pool):
    result = await seed_demo_data(crm_pool, now=NOW)
    assert result == {"contacts_created": 10, "interactions_inserted": 26}
    assert await crm_pool.fetchval("SELECT COUNT(*) FROM interactions") == 26

    lisa = await contact_find_by_name(crm_pool, "Lisa Tran")
    assert lisa["last_interaction_date"] is None

    jake = await contact_find_by_name(crm_pool, "Jake Sullivan")
    assert (NOW - jake["last_interaction_date"]).days == 2


async def test_seed_overdue_view(crm_pool):
    await seed_demo_data(crm_pool, now=NOW)
    overdue = await contacts_overdue(crm_pool, 30, now=NOW)
    assert [r["name"] for r in overdue] == [
        "Lisa Tran",
        "Uncle Rob",
        "Dana Park",
        "Tom Reyes",
        "Marcus Webb",
    ]
    assert overdue[1]["days_since_contact"] == 80


async def test_seed_reuses_existing_contacts(crm_pool):
    await seed_demo_data(crm_pool, now=NOW)
    result = await seed_demo_data(crm_pool, now=NOW)
    assert result["contacts_created"] == 0
    assert await crm_pool.fetchval("SELECT COUNT(*) FROM contacts") == 10


async def test_demo_summary_counts(crm_pool):
    await seed_demo_data(crm_pool, now=NOW)
    summary = {row["name"]: row for row in await demo_summary(crm_pool)}
    assert summary["Mom"]["interaction_count"] == 4
    assert summary["Lisa Tran"]["interaction_count"] == 0
