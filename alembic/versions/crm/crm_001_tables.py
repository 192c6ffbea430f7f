"""create_crm_tables

Revision ID: crm_001
Revises:
Create Date: 2026-10-01 00:00:00.000000

"""

from __future__ import annotations

from alembic import op

from rapport.schema import (
    DROP_STATEMENTS,
    TABLE_STATEMENTS,
    seed_interaction_types_statement,
)

# revision identifiers, used by Alembic.
revision = "crm_001"
down_revision = None
branch_labels = ("crm",)
depends_on = None


def upgrade() -> None:
    for statement in TABLE_STATEMENTS:
        op.execute(statement)
    op.execute(seed_interaction_types_statement())


def downgrade() -> None:
    for statement in DROP_STATEMENTS:
        op.execute(statement)
