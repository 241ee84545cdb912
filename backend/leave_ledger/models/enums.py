from __future__ import annotations

import enum


class LedgerEntryType(enum.StrEnum):
    """Type of ledger entry affecting the leave balance."""

    OPENING = "OPENING"
    ACCRUAL = "ACCRUAL"
    TAKEN = "TAKEN"
    ADJUSTMENT = "ADJUSTMENT"
    CARRYOVER = "CARRYOVER"


# At most one entry per (employee, type, period key) for these types.
IDEMPOTENT_ENTRY_TYPES = frozenset(
    {
        LedgerEntryType.OPENING,
        LedgerEntryType.ACCRUAL,
        LedgerEntryType.CARRYOVER,
    }
)


class LeaveUnit(enum.StrEnum):
    """Unit in which an employee's leave is displayed."""

    DAYS = "DAYS"
    HOURS = "HOURS"


class Weekday(enum.StrEnum):
    """Roster weekday, ordered like ``date.weekday()``."""

    MON = "mon"
    TUE = "tue"
    WED = "wed"
    THU = "thu"
    FRI = "fri"
    SAT = "sat"
    SUN = "sun"

    @classmethod
    def from_index(cls, index: int) -> Weekday:
        return list(cls)[index]


class AuditEntityType(enum.StrEnum):
    """Entity type recorded in the audit log."""

    LEDGER_ENTRY = "LEDGER_ENTRY"


class AuditAction(enum.StrEnum):
    """Action recorded in the audit log."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
