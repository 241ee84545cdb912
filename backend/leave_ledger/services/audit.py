"""Audit trail of ledger mutations.

Ledger entries are never deleted, but upsert_by_key replaces the amount of
OPENING, ACCRUAL and CARRYOVER entries in place. Each insert and each
replacement leaves an AuditLog row, so earlier amounts remain traceable.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlmodel import col

from leave_ledger.models.audit import AuditLog
from leave_ledger.models.enums import AuditEntityType

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_ledger.models.enums import AuditAction
    from leave_ledger.models.ledger import LeaveLedgerEntry

# Actor recorded for accrual runs and other writes without a calling user.
SYSTEM_ACTOR = uuid.UUID(int=0)


def snapshot_entry(entry: LeaveLedgerEntry) -> dict[str, Any]:
    """JSON-safe copy of a ledger entry for the before/after columns."""
    return entry.model_dump(mode="json")


def record_entry_change(
    session: AsyncSession,
    entry: LeaveLedgerEntry,
    action: AuditAction,
    *,
    actor_id: uuid.UUID | None,
    before: dict[str, Any] | None = None,
) -> AuditLog:
    """Add an audit row for ``entry`` in its current state to the caller's transaction."""
    log = AuditLog(
        actor_id=actor_id or SYSTEM_ACTOR,
        entity_type=AuditEntityType.LEDGER_ENTRY.value,
        entity_id=entry.id,
        action=action.value,
        before_json=before,
        after_json=snapshot_entry(entry),
    )
    session.add(log)
    return log


async def get_entry_history(session: AsyncSession, entry_id: uuid.UUID) -> list[AuditLog]:
    result = await session.execute(
        select(AuditLog)
        .where(
            col(AuditLog.entity_type) == AuditEntityType.LEDGER_ENTRY.value,
            col(AuditLog.entity_id) == entry_id,
        )
        .order_by(col(AuditLog.created_at), col(AuditLog.id))
    )
    return list(result.scalars().all())
