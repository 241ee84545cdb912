# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from leave_ledger.models.enums import AuditAction, LeaveUnit, LedgerEntryType

# ---------------------------------------------------------------------------
# Balance schemas
# ---------------------------------------------------------------------------


class BalanceSummary(BaseModel):
    """Aggregate of an employee's ledger. All amounts in minutes."""

    balance_minutes: int = 0
    opening_minutes: int = 0
    accrued_minutes: int = 0
    carryover_minutes: int = 0
    adjustment_minutes: int = 0
    taken_minutes: int = 0  # positive magnitude
    entry_count: int = 0


class CachedBalanceResponse(BaseModel):
    """Display projection of an employee's balance."""

    employee_id: uuid.UUID
    unit: LeaveUnit
    legal: Decimal
    extra: Decimal
    carryover: Decimal
    balance_minutes: int
    carryover_minutes: int
    accrued_minutes: int
    taken_minutes: int
    updated_at: datetime | None
    fresh: bool = False


# ---------------------------------------------------------------------------
# Ledger schemas
# ---------------------------------------------------------------------------


class LedgerEntryResponse(BaseModel):
    """A single ledger entry."""

    id: uuid.UUID
    employee_id: uuid.UUID
    entry_type: LedgerEntryType
    amount_minutes: int
    period_key: str | None
    leave_request_id: str | None
    created_by: uuid.UUID | None
    notes: str | None
    effective_date: date | None
    created_at: datetime


class LedgerListResponse(BaseModel):
    """Paginated ledger entries."""

    items: list[LedgerEntryResponse]
    total: int


# ---------------------------------------------------------------------------
# Write requests
# ---------------------------------------------------------------------------


class CreateAdjustmentRequest(BaseModel):
    """Request body for an HR balance correction."""

    amount_minutes: int = Field(
        description="Signed integer: positive to add, negative to deduct",
    )
    notes: str = Field(min_length=1, max_length=1000)


class SetCarryoverRequest(BaseModel):
    """Request body for setting (or correcting) a year's carryover."""

    amount_minutes: int
    notes: str | None = Field(default=None, max_length=1000)


class EntryHistoryItem(BaseModel):
    """One audited change to a ledger entry."""

    id: uuid.UUID
    action: AuditAction
    actor_id: uuid.UUID
    before: dict[str, Any] | None
    after: dict[str, Any] | None
    created_at: datetime
