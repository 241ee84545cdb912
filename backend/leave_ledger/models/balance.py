# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import UTC, datetime
from decimal import Decimal

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from leave_ledger.models.enums import LeaveUnit


def _now_utc() -> datetime:
    return datetime.now(UTC)


class EmployeeLeaveBalance(SQLModel, table=True):
    """Cached leave balance of one employee, rebuilt from the ledger on every sync."""

    __tablename__ = "employee_leave_balance"

    employee_id: uuid.UUID = Field(primary_key=True, sa_type=sa.Uuid)
    balance_minutes: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    carryover_minutes: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    accrued_minutes: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    taken_minutes: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    legal: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)
    extra: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)
    carryover: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)
    unit: str = Field(default=LeaveUnit.HOURS.value, max_length=10)
    updated_at: datetime = Field(  # type: ignore[call-overload]
        default_factory=_now_utc,
        sa_type=sa.DateTime(timezone=True),
        sa_column_kwargs={"server_default": sa.func.now(), "onupdate": sa.func.now()},
    )
    version: int = Field(default=1, sa_column_kwargs={"server_default": "1"})
