# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date

import sqlalchemy as sa
from sqlmodel import Field

from leave_ledger.models.base import RecordBase
from leave_ledger.models.enums import IDEMPOTENT_ENTRY_TYPES

_IDEMPOTENT_TYPES_SQL = ", ".join(f"'{entry_type.value}'" for entry_type in sorted(IDEMPOTENT_ENTRY_TYPES))
_IDEMPOTENT_WHERE = sa.text(f"entry_type IN ({_IDEMPOTENT_TYPES_SQL})")
# At most one cancellation reversal per leave request.
_REVERSAL_WHERE = sa.text("entry_type = 'ADJUSTMENT' AND leave_request_id IS NOT NULL")


class LeaveLedgerEntry(RecordBase, table=True):
    """Append-only ledger entry that records every leave balance change in signed minutes."""

    __tablename__ = "leave_ledger_entry"
    __table_args__ = (
        sa.Index("ix_leave_ledger_employee_type", "employee_id", "entry_type"),
        sa.Index(
            "uq_leave_ledger_idempotency",
            "employee_id",
            "entry_type",
            "period_key",
            unique=True,
            postgresql_where=_IDEMPOTENT_WHERE,
            sqlite_where=_IDEMPOTENT_WHERE,
        ),
        sa.Index(
            "uq_leave_ledger_reversal",
            "employee_id",
            "leave_request_id",
            unique=True,
            postgresql_where=_REVERSAL_WHERE,
            sqlite_where=_REVERSAL_WHERE,
        ),
    )

    employee_id: uuid.UUID = Field(index=True)
    entry_type: str = Field(max_length=50)
    amount_minutes: int
    period_key: str | None = Field(default=None, max_length=255)
    leave_request_id: str | None = Field(default=None, max_length=255, index=True)
    created_by: uuid.UUID | None = Field(default=None)
    notes: str | None = Field(default=None, max_length=1000)
    # Business date the entry takes effect; OPENING entries carry the seeding date.
    effective_date: date | None = Field(default=None)
