from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field


class LeavePolicySettings(BaseModel):
    """Company-wide leave policy flags, passed explicitly into the ledger services."""

    rounding_minutes: int = Field(default=15, ge=0, le=480)
    allow_negative_balance: bool = True
    accrual_start_date: date | None = None
