"""Ledger entry store: append-only leave events keyed for idempotent upserts.

Every function here flushes but never commits; the public entry point that
calls it owns the transaction.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from leave_ledger.exceptions import DuplicateKeyError
from leave_ledger.models.enums import IDEMPOTENT_ENTRY_TYPES, AuditAction, LedgerEntryType
from leave_ledger.models.ledger import LeaveLedgerEntry
from leave_ledger.services.audit import record_entry_change, snapshot_entry

if TYPE_CHECKING:
    import uuid
    from collections.abc import Iterable
    from datetime import date

    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


def _entry_filters(
    employee_id: uuid.UUID,
    entry_types: Iterable[LedgerEntryType] | None = None,
    period_key: str | None = None,
    period_key_prefix: str | None = None,
) -> list[object]:
    filters: list[object] = [col(LeaveLedgerEntry.employee_id) == employee_id]
    if entry_types is not None:
        filters.append(col(LeaveLedgerEntry.entry_type).in_([t.value for t in entry_types]))
    if period_key is not None:
        filters.append(col(LeaveLedgerEntry.period_key) == period_key)
    if period_key_prefix is not None:
        filters.append(col(LeaveLedgerEntry.period_key).startswith(period_key_prefix, autoescape=True))
    return filters


# ---------------------------------------------------------------------------
# Read path
# ---------------------------------------------------------------------------


async def query_by_employee(
    session: AsyncSession,
    employee_id: uuid.UUID,
    *,
    entry_types: Iterable[LedgerEntryType] | None = None,
    period_key: str | None = None,
    period_key_prefix: str | None = None,
    offset: int = 0,
    limit: int | None = None,
) -> list[LeaveLedgerEntry]:
    """Return an employee's entries in insertion order, optionally filtered."""
    query = (
        select(LeaveLedgerEntry)
        .where(*_entry_filters(employee_id, entry_types, period_key, period_key_prefix))  # type: ignore[arg-type]
        .order_by(col(LeaveLedgerEntry.created_at), col(LeaveLedgerEntry.id))
        .offset(offset)
    )
    if limit is not None:
        query = query.limit(limit)

    result = await session.execute(query)
    return list(result.scalars().all())


async def count_by_employee(
    session: AsyncSession,
    employee_id: uuid.UUID,
    *,
    entry_types: Iterable[LedgerEntryType] | None = None,
    period_key_prefix: str | None = None,
) -> int:
    """Count an employee's entries. Zero means the employee is not ledger-managed yet."""
    result = await session.execute(
        select(func.count())
        .select_from(LeaveLedgerEntry)
        .where(*_entry_filters(employee_id, entry_types, None, period_key_prefix))  # type: ignore[arg-type]
    )
    return int(result.scalar_one())


async def get_entry_by_key(
    session: AsyncSession,
    employee_id: uuid.UUID,
    entry_type: LedgerEntryType,
    period_key: str,
    *,
    for_update: bool = False,
) -> LeaveLedgerEntry | None:
    """Fetch the single entry stored under an idempotency key."""
    query = select(LeaveLedgerEntry).where(
        col(LeaveLedgerEntry.employee_id) == employee_id,
        col(LeaveLedgerEntry.entry_type) == entry_type.value,
        col(LeaveLedgerEntry.period_key) == period_key,
    )
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query)
    return result.scalars().first()


# ---------------------------------------------------------------------------
# Write path
# ---------------------------------------------------------------------------


async def append_entry(
    session: AsyncSession,
    employee_id: uuid.UUID,
    entry_type: LedgerEntryType,
    amount_minutes: int,
    *,
    period_key: str | None = None,
    leave_request_id: str | None = None,
    created_by: uuid.UUID | None = None,
    notes: str | None = None,
    effective_date: date | None = None,
) -> LeaveLedgerEntry:
    """Insert a new immutable entry.

    Raises DuplicateKeyError when an OPENING, ACCRUAL or CARRYOVER entry
    already exists for the same period key (use upsert_by_key for those), or
    when a leave request already has its cancellation reversal.
    """
    entry = LeaveLedgerEntry(
        employee_id=employee_id,
        entry_type=entry_type.value,
        amount_minutes=amount_minutes,
        period_key=period_key,
        leave_request_id=leave_request_id,
        created_by=created_by,
        notes=notes,
        effective_date=effective_date,
    )

    # Savepoint so that a duplicate only rolls back this insert, not the outer transaction.
    try:
        async with session.begin_nested():
            session.add(entry)
            await session.flush()
    except IntegrityError as exc:
        raise DuplicateKeyError(
            f"{entry_type.value} entry for period {period_key!r} already exists for employee {employee_id}"
        ) from exc

    record_entry_change(session, entry, AuditAction.CREATE, actor_id=created_by)
    return entry


async def _replace_amount(
    session: AsyncSession,
    entry: LeaveLedgerEntry,
    amount_minutes: int,
    *,
    notes: str | None,
    created_by: uuid.UUID | None,
) -> LeaveLedgerEntry:
    if entry.amount_minutes == amount_minutes and (notes is None or notes == entry.notes):
        return entry

    before = snapshot_entry(entry)
    entry.amount_minutes = amount_minutes
    if notes is not None:
        entry.notes = notes
    session.add(entry)
    await session.flush()

    record_entry_change(session, entry, AuditAction.UPDATE, actor_id=created_by, before=before)
    return entry


async def upsert_by_key(
    session: AsyncSession,
    employee_id: uuid.UUID,
    entry_type: LedgerEntryType,
    period_key: str,
    amount_minutes: int,
    *,
    leave_request_id: str | None = None,
    created_by: uuid.UUID | None = None,
    notes: str | None = None,
    effective_date: date | None = None,
) -> LeaveLedgerEntry:
    """Insert the entry for a key, or replace the amount of the existing one.

    Replacement is not additive, which makes corrections re-runnable. A
    concurrent insert that wins the race on the unique index is treated as
    success: the winner's row is re-read and its amount replaced.
    """
    if entry_type not in IDEMPOTENT_ENTRY_TYPES:
        raise ValueError(f"{entry_type.value} entries are not keyed; use append_entry")

    existing = await get_entry_by_key(session, employee_id, entry_type, period_key, for_update=True)
    if existing is None:
        try:
            return await append_entry(
                session,
                employee_id,
                entry_type,
                amount_minutes,
                period_key=period_key,
                leave_request_id=leave_request_id,
                created_by=created_by,
                notes=notes,
                effective_date=effective_date,
            )
        except DuplicateKeyError:
            logger.info(
                "Concurrent insert for employee=%s type=%s period=%s, replacing instead",
                employee_id,
                entry_type.value,
                period_key,
            )
            existing = await get_entry_by_key(session, employee_id, entry_type, period_key, for_update=True)
            if existing is None:
                raise

    return await _replace_amount(session, existing, amount_minutes, notes=notes, created_by=created_by)
