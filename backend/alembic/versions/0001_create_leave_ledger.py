"""Create leave ledger, balance cache and audit log tables.

Revision ID: 0001
Revises:
Create Date: 2026-10-17
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

_IDEMPOTENT_WHERE = sa.text("entry_type IN ('ACCRUAL', 'CARRYOVER', 'OPENING')")


def upgrade() -> None:
    op.create_table(
        "leave_ledger_entry",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column("entry_type", sa.String(length=50), nullable=False),
        sa.Column("amount_minutes", sa.Integer(), nullable=False),
        sa.Column("period_key", sa.String(length=255), nullable=True),
        sa.Column("leave_request_id", sa.String(length=255), nullable=True),
        sa.Column("created_by", sa.Uuid(), nullable=True),
        sa.Column("notes", sa.String(length=1000), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_leave_ledger_entry_employee_id", "leave_ledger_entry", ["employee_id"])
    op.create_index("ix_leave_ledger_entry_leave_request_id", "leave_ledger_entry", ["leave_request_id"])
    op.create_index("ix_leave_ledger_employee_type", "leave_ledger_entry", ["employee_id", "entry_type"])
    op.create_index(
        "uq_leave_ledger_idempotency",
        "leave_ledger_entry",
        ["employee_id", "entry_type", "period_key"],
        unique=True,
        postgresql_where=_IDEMPOTENT_WHERE,
        sqlite_where=_IDEMPOTENT_WHERE,
    )

    op.create_table(
        "employee_leave_balance",
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column("balance_minutes", sa.Integer(), server_default="0", nullable=False),
        sa.Column("carryover_minutes", sa.Integer(), server_default="0", nullable=False),
        sa.Column("accrued_minutes", sa.Integer(), server_default="0", nullable=False),
        sa.Column("taken_minutes", sa.Integer(), server_default="0", nullable=False),
        sa.Column("legal", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("extra", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("carryover", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("unit", sa.String(length=10), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("version", sa.Integer(), server_default="1", nullable=False),
        sa.PrimaryKeyConstraint("employee_id"),
    )

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("actor_id", sa.Uuid(), nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.Uuid(), nullable=False),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("before_json", sa.JSON(), nullable=True),
        sa.Column("after_json", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_entity", "audit_log", ["entity_type", "entity_id"])
    op.create_index("ix_audit_log_created_at", "audit_log", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_audit_log_created_at", table_name="audit_log")
    op.drop_index("ix_audit_entity", table_name="audit_log")
    op.drop_table("audit_log")
    op.drop_table("employee_leave_balance")
    op.drop_index("uq_leave_ledger_idempotency", table_name="leave_ledger_entry")
    op.drop_index("ix_leave_ledger_employee_type", table_name="leave_ledger_entry")
    op.drop_index("ix_leave_ledger_entry_leave_request_id", table_name="leave_ledger_entry")
    op.drop_index("ix_leave_ledger_entry_employee_id", table_name="leave_ledger_entry")
    op.drop_table("leave_ledger_entry")
