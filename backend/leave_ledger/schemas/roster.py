from __future__ import annotations

from datetime import time

from pydantic import BaseModel, Field, model_validator

from leave_ledger.models.enums import Weekday


class BreakInterval(BaseModel):
    """A recurring daily break, e.g. lunch 12:00-12:30."""

    start: time
    end: time

    @model_validator(mode="after")
    def _check_order(self) -> BreakInterval:
        if self.end <= self.start:
            raise ValueError("break end must be after break start")
        return self


class Roster(BaseModel):
    """Working-time schedule that leave requests are measured against."""

    working_days: list[Weekday] = Field(min_length=1)
    day_start: time
    day_end: time
    breaks: list[BreakInterval] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_window(self) -> Roster:
        if self.day_end <= self.day_start:
            raise ValueError("day_end must be after day_start")
        return self

    def with_working_days(self, working_days: list[Weekday] | None) -> Roster:
        """Return a copy using an employee's own working days, when configured."""
        if not working_days:
            return self
        return self.model_copy(update={"working_days": list(working_days)})
