# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field

from leave_ledger.exceptions import MissingLeaveConfigError, NotFoundError
from leave_ledger.models.enums import LeaveUnit, Weekday


def leave_value_to_minutes(value: Decimal | None, unit: LeaveUnit, hours_per_day: Decimal | None) -> int:
    """Convert a legacy days/hours value into whole minutes.

    Missing values count as zero. Day values need a positive ``hours_per_day``.
    """
    if value is None:
        return 0
    if unit == LeaveUnit.HOURS:
        hours = Decimal(value)
    else:
        if hours_per_day is None or hours_per_day <= 0:
            raise MissingLeaveConfigError("hours_per_day must be configured to convert days into minutes")
        hours = Decimal(value) * Decimal(hours_per_day)
    return int((hours * 60).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class EmployeeLeaveProfile(BaseModel):
    """Leave-relevant fields of the employee record, read-only to the ledger."""

    id: uuid.UUID
    display_name: str
    email: str | None = None
    is_active: bool = True
    hours_per_day: Decimal | None = None
    annual_leave_value: Decimal | None = None  # in leave_unit
    leave_unit: LeaveUnit = LeaveUnit.DAYS
    employment_start_date: date | None = None
    employment_end_date: date | None = None
    working_days: list[Weekday] = Field(default_factory=list)
    # Pre-ledger flat balances, in leave_unit.
    leave_balance_legal: Decimal | None = None
    leave_balance_extra: Decimal | None = None
    leave_balance_carryover: Decimal | None = None

    @property
    def annual_entitlement_minutes(self) -> int | None:
        """Annual entitlement in minutes, or None when not configured."""
        if self.annual_leave_value is None:
            return None
        return leave_value_to_minutes(self.annual_leave_value, self.leave_unit, self.hours_per_day)

    @property
    def legacy_vacation_minutes(self) -> int:
        legal = self.leave_balance_legal or Decimal("0")
        extra = self.leave_balance_extra or Decimal("0")
        return leave_value_to_minutes(legal + extra, self.leave_unit, self.hours_per_day)

    @property
    def legacy_carryover_minutes(self) -> int:
        return leave_value_to_minutes(self.leave_balance_carryover, self.leave_unit, self.hours_per_day)


@runtime_checkable
class EmployeeService(Protocol):
    """Interface for the employee directory of the host application."""

    async def get_employee(self, employee_id: uuid.UUID) -> EmployeeLeaveProfile | None:
        """Fetch employee leave profile. Returns None if not found."""
        ...

    async def list_employees(self, *, active_only: bool = True) -> list[EmployeeLeaveProfile]:
        """List employees, active ones only by default."""
        ...


class InMemoryEmployeeService:
    """In-memory stub implementation for development."""

    def __init__(self) -> None:
        self._employees: dict[uuid.UUID, EmployeeLeaveProfile] = {}

    def seed(self, employee: EmployeeLeaveProfile) -> None:
        """Seed an employee for testing."""
        self._employees[employee.id] = employee

    async def get_employee(self, employee_id: uuid.UUID) -> EmployeeLeaveProfile | None:
        """Fetch employee leave profile. Returns None if not found."""
        return self._employees.get(employee_id)

    async def list_employees(self, *, active_only: bool = True) -> list[EmployeeLeaveProfile]:
        """List employees, active ones only by default."""
        return [e for e in self._employees.values() if e.is_active or not active_only]


_employee_service: EmployeeService = InMemoryEmployeeService()


def get_employee_service() -> EmployeeService:
    """FastAPI dependency for the Employee Service."""
    return _employee_service


def set_employee_service(service: EmployeeService) -> None:
    """Override the service (for testing or production wiring)."""
    global _employee_service
    _employee_service = service


async def get_employee_profile(employee_id: uuid.UUID) -> EmployeeLeaveProfile:
    """Fetch a profile or raise NotFoundError."""
    employee = await get_employee_service().get_employee(employee_id)
    if employee is None:
        raise NotFoundError(f"Employee {employee_id} not found")
    return employee
