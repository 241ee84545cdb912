"""Add effective_date to ledger entries and a unique key for cancellation reversals.

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-17
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None

_REVERSAL_WHERE = sa.text("entry_type = 'ADJUSTMENT' AND leave_request_id IS NOT NULL")


def upgrade() -> None:
    with op.batch_alter_table("leave_ledger_entry") as batch_op:
        batch_op.add_column(sa.Column("effective_date", sa.Date(), nullable=True))

    # Existing OPENING rows take effect on the day they were seeded.
    seeded_on = "date(created_at)" if op.get_context().dialect.name == "sqlite" else "CAST(created_at AS DATE)"
    op.execute(
        f"UPDATE leave_ledger_entry SET effective_date = {seeded_on} "
        "WHERE entry_type = 'OPENING' AND effective_date IS NULL"
    )

    op.create_index(
        "uq_leave_ledger_reversal",
        "leave_ledger_entry",
        ["employee_id", "leave_request_id"],
        unique=True,
        postgresql_where=_REVERSAL_WHERE,
        sqlite_where=_REVERSAL_WHERE,
    )


def downgrade() -> None:
    op.drop_index("uq_leave_ledger_reversal", table_name="leave_ledger_entry")
    with op.batch_alter_table("leave_ledger_entry") as batch_op:
        batch_op.drop_column("effective_date")
