from __future__ import annotations

import logging
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from leave_ledger.exceptions import MissingLeaveConfigError
from leave_ledger.models.balance import EmployeeLeaveBalance
from leave_ledger.models.enums import LeaveUnit, LedgerEntryType
from leave_ledger.schemas.balance import BalanceSummary, CachedBalanceResponse, LedgerEntryResponse
from leave_ledger.services.employee import get_employee_profile
from leave_ledger.services.ledger import query_by_employee

if TYPE_CHECKING:
    import uuid
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_ledger.models.ledger import LeaveLedgerEntry

logger = logging.getLogger(__name__)

_CENTS = Decimal("0.01")


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def fold_entries(entries: Iterable[LeaveLedgerEntry]) -> BalanceSummary:
    """Aggregate ledger entries into a summary.

    The balance is accumulated in the same pass as the per-type totals, so it
    always equals the sum of every entry's amount.
    """
    summary = BalanceSummary()
    for entry in entries:
        amount = entry.amount_minutes
        summary.balance_minutes += amount
        summary.entry_count += 1

        entry_type = LedgerEntryType(entry.entry_type)
        if entry_type == LedgerEntryType.OPENING:
            summary.opening_minutes += amount
        elif entry_type == LedgerEntryType.ACCRUAL:
            summary.accrued_minutes += amount
        elif entry_type == LedgerEntryType.CARRYOVER:
            summary.carryover_minutes += amount
        elif entry_type == LedgerEntryType.ADJUSTMENT:
            summary.adjustment_minutes += amount
        elif entry_type == LedgerEntryType.TAKEN and amount < 0:
            summary.taken_minutes += -amount

    return summary


def to_display_unit(minutes: int, unit: LeaveUnit, hours_per_day: Decimal | None = None) -> Decimal:
    """Convert minutes into hours or days, rounded half-up to two decimals."""
    hours = Decimal(minutes) / Decimal(60)
    if unit == LeaveUnit.HOURS:
        return hours.quantize(_CENTS, rounding=ROUND_HALF_UP)

    if hours_per_day is None or hours_per_day <= 0:
        raise MissingLeaveConfigError("Configure hours per day before displaying leave in days")
    return (hours / Decimal(hours_per_day)).quantize(_CENTS, rounding=ROUND_HALF_UP)


def build_ledger_entry_response(entry: LeaveLedgerEntry) -> LedgerEntryResponse:
    """Map a ledger entry model to its response schema."""
    return LedgerEntryResponse(
        id=entry.id,
        employee_id=entry.employee_id,
        entry_type=LedgerEntryType(entry.entry_type),
        amount_minutes=entry.amount_minutes,
        period_key=entry.period_key,
        leave_request_id=entry.leave_request_id,
        created_by=entry.created_by,
        notes=entry.notes,
        effective_date=entry.effective_date,
        created_at=entry.created_at,
    )


def build_cached_balance_response(cache: EmployeeLeaveBalance, *, fresh: bool = False) -> CachedBalanceResponse:
    return CachedBalanceResponse(
        employee_id=cache.employee_id,
        unit=LeaveUnit(cache.unit),
        legal=cache.legal,
        extra=cache.extra,
        carryover=cache.carryover,
        balance_minutes=cache.balance_minutes,
        carryover_minutes=cache.carryover_minutes,
        accrued_minutes=cache.accrued_minutes,
        taken_minutes=cache.taken_minutes,
        updated_at=cache.updated_at,
        fresh=fresh,
    )


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------


async def summarize(session: AsyncSession, employee_id: uuid.UUID) -> BalanceSummary:
    """Compute the authoritative balance from the ledger. Never reads the cache."""
    entries = await query_by_employee(session, employee_id)
    return fold_entries(entries)


# ---------------------------------------------------------------------------
# Synchronizer
# ---------------------------------------------------------------------------


async def _select_cache(
    session: AsyncSession,
    employee_id: uuid.UUID,
    *,
    for_update: bool = False,
) -> EmployeeLeaveBalance | None:
    query = select(EmployeeLeaveBalance).where(col(EmployeeLeaveBalance.employee_id) == employee_id)
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query)
    return result.scalar_one_or_none()


async def _get_or_create_cache_for_update(session: AsyncSession, employee_id: uuid.UUID) -> EmployeeLeaveBalance:
    """Get the cached balance row with a FOR UPDATE lock, creating it if absent."""
    cache = await _select_cache(session, employee_id, for_update=True)
    if cache is not None:
        return cache

    cache = EmployeeLeaveBalance(employee_id=employee_id, version=0)
    try:
        async with session.begin_nested():
            session.add(cache)
            await session.flush()
    except IntegrityError:
        # Another transaction created the row first.
        cache = await _select_cache(session, employee_id, for_update=True)
        if cache is None:
            raise
    return cache


async def get_cached_balance(session: AsyncSession, employee_id: uuid.UUID) -> EmployeeLeaveBalance | None:
    """Read the display cache. Not for balance decisions; use summarize for those."""
    return await _select_cache(session, employee_id)


async def sync_cached_balance(
    session: AsyncSession,
    employee_id: uuid.UUID,
    *,
    commit: bool = True,
) -> BalanceSummary:
    """Recompute the ledger summary and write it into the cached balance row.

    This is the only writer of the cache. Display values are converted into
    the employee's leave unit; the minute totals are stored as-is.
    """
    profile = await get_employee_profile(employee_id)
    summary = await summarize(session, employee_id)

    unit = profile.leave_unit
    legal = to_display_unit(summary.balance_minutes - summary.carryover_minutes, unit, profile.hours_per_day)
    carryover = to_display_unit(summary.carryover_minutes, unit, profile.hours_per_day)

    cache = await _get_or_create_cache_for_update(session, employee_id)
    cache.balance_minutes = summary.balance_minutes
    cache.carryover_minutes = summary.carryover_minutes
    cache.accrued_minutes = summary.accrued_minutes
    cache.taken_minutes = summary.taken_minutes
    cache.legal = legal
    cache.extra = Decimal("0.00")
    cache.carryover = carryover
    cache.unit = unit.value
    cache.updated_at = datetime.now(UTC)
    cache.version += 1
    session.add(cache)
    await session.flush()

    logger.info(
        "Synced leave balance employee=%s balance=%d carryover=%d version=%d",
        employee_id,
        summary.balance_minutes,
        summary.carryover_minutes,
        cache.version,
    )

    if commit:
        await session.commit()
    return summary
