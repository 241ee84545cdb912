# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date

from pydantic import BaseModel, Field


class RunAccrualsRequest(BaseModel):
    """Body for an accrual run; defaults to every active employee as of today."""

    as_of: date | None = None
    employee_id: uuid.UUID | None = None


class EmployeeAccrualResponse(BaseModel):
    """Accrual outcome for one employee."""

    employee_id: uuid.UUID
    seeded: bool = False
    periods_created: list[str] = Field(default_factory=list)
    minutes_accrued: int = 0
    error: str | None = None


class AccrualRunResponse(BaseModel):
    """Summary of an accrual run over several employees."""

    as_of: date
    processed: int
    accrued: int
    skipped: int
    errors: int
    results: list[EmployeeAccrualResponse]
