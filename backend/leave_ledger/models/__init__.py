from sqlmodel import SQLModel

from leave_ledger.models.audit import AuditLog
from leave_ledger.models.balance import EmployeeLeaveBalance
from leave_ledger.models.base import RecordBase
from leave_ledger.models.enums import (
    IDEMPOTENT_ENTRY_TYPES,
    AuditAction,
    AuditEntityType,
    LedgerEntryType,
    LeaveUnit,
    Weekday,
)
from leave_ledger.models.ledger import LeaveLedgerEntry

__all__ = [
    "IDEMPOTENT_ENTRY_TYPES",
    "AuditAction",
    "AuditEntityType",
    "AuditLog",
    "EmployeeLeaveBalance",
    "LeaveLedgerEntry",
    "LeaveUnit",
    "LedgerEntryType",
    "RecordBase",
    "SQLModel",
    "Weekday",
]
