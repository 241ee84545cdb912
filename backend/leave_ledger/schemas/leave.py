# ruff: noqa: TC001, TC003
from __future__ import annotations

from datetime import date, time

from pydantic import BaseModel, Field

from leave_ledger.schemas.balance import LedgerEntryResponse
from leave_ledger.schemas.roster import Roster


class LeaveMinutesRequest(BaseModel):
    """A leave span to measure against the roster."""

    start_date: date
    end_date: date
    start_time: time | None = None
    end_time: time | None = None
    roster: Roster | None = None


class LeaveMinutesResponse(BaseModel):
    """Working minutes covered by a leave span."""

    exact_minutes: int
    requested_minutes: int
    rounding_minutes: int


class RecordLeaveTakenRequest(BaseModel):
    """Approval hook: book an approved leave request against the balance."""

    leave_request_id: str = Field(min_length=1, max_length=255)
    start_date: date
    end_date: date
    start_time: time | None = None
    end_time: time | None = None
    minutes: int | None = Field(default=None, ge=0, description="Pre-computed minutes; skips the roster")
    allow_negative_override: bool = False
    notes: str | None = Field(default=None, max_length=1000)


class LeaveBookingResponse(BaseModel):
    """Balance before and after a leave booking."""

    old_balance_minutes: int
    new_balance_minutes: int
    entry: LedgerEntryResponse | None
