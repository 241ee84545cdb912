"""Leave workflows composing the ledger components in a single transaction.

Every workflow seeds the legacy opening balance first: once any other entry
exists the seeder becomes a no-op, so seeding later would lose the legacy
balance for good.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

from leave_ledger.exceptions import (
    DuplicateKeyError,
    InsufficientBalanceError,
    MissingLeaveConfigError,
    NotFoundError,
)
from leave_ledger.models.enums import LedgerEntryType
from leave_ledger.services.accrual import ensure_accrual_up_to_date
from leave_ledger.services.balance import summarize, sync_cached_balance
from leave_ledger.services.carryover import set_carryover
from leave_ledger.services.ledger import append_entry, query_by_employee
from leave_ledger.services.opening import seed_from_profile
from leave_ledger.services.roster import compute_minutes, round_minutes

if TYPE_CHECKING:
    import uuid
    from datetime import time

    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_ledger.models.enums import Weekday
    from leave_ledger.models.ledger import LeaveLedgerEntry
    from leave_ledger.schemas.policy import LeavePolicySettings
    from leave_ledger.schemas.roster import Roster

logger = logging.getLogger(__name__)


@dataclass
class RequestedMinutes:
    """Working minutes of a leave span, exact and rounded to the policy increment."""

    exact_minutes: int
    requested_minutes: int
    rounding_minutes: int


@dataclass
class LeaveBookingResult:
    """Balance before and after a ledger booking."""

    old_balance_minutes: int
    new_balance_minutes: int
    entry: LeaveLedgerEntry | None


def cancel_period_key(leave_request_id: str) -> str:
    return f"CANCEL-{leave_request_id}"


def calculate_request_minutes(
    start_date: date,
    end_date: date,
    start_time: time | None = None,
    end_time: time | None = None,
    *,
    roster: Roster,
    policy: LeavePolicySettings,
    working_days: list[Weekday] | None = None,
) -> RequestedMinutes:
    """Measure a leave span against the roster and round it to the policy increment.

    ``working_days`` is the employee's own schedule and replaces the
    roster's working days when given.
    """
    exact = compute_minutes(
        start_date,
        end_date,
        start_time,
        end_time,
        roster=roster.with_working_days(working_days),
    )
    return RequestedMinutes(
        exact_minutes=exact,
        requested_minutes=round_minutes(exact, policy.rounding_minutes),
        rounding_minutes=policy.rounding_minutes,
    )


async def _prepare_ledger(
    session: AsyncSession,
    employee_id: uuid.UUID,
    as_of: date,
    policy: LeavePolicySettings | None,
    created_by: uuid.UUID | None,
) -> None:
    """Seed legacy balances, then bring accruals up to date."""
    await seed_from_profile(session, employee_id, as_of=as_of, created_by=created_by, commit=False)
    try:
        await ensure_accrual_up_to_date(session, employee_id, as_of, policy=policy, commit=False)
    except MissingLeaveConfigError as exc:
        logger.warning("Skipping accrual refresh for employee=%s: %s", employee_id, exc.message)


async def record_leave_taken(
    session: AsyncSession,
    employee_id: uuid.UUID,
    leave_request_id: str,
    minutes: int,
    *,
    as_of: date | None = None,
    policy: LeavePolicySettings | None = None,
    created_by: uuid.UUID | None = None,
    notes: str | None = None,
    allow_negative_override: bool = False,
) -> LeaveBookingResult:
    """Book an approved leave request as a TAKEN entry and refresh the cache.

    The balance may go negative unless the policy forbids it; a manager
    override lifts that restriction. Concurrent approvals are not serialized.
    """
    if minutes < 0:
        raise ValueError("minutes must not be negative")
    if as_of is None:
        as_of = date.today()

    await _prepare_ledger(session, employee_id, as_of, policy, created_by)

    before = await summarize(session, employee_id)
    if minutes == 0:
        await sync_cached_balance(session, employee_id, commit=False)
        await session.commit()
        return LeaveBookingResult(before.balance_minutes, before.balance_minutes, None)

    new_balance = before.balance_minutes - minutes
    if policy is not None and not policy.allow_negative_balance and not allow_negative_override and new_balance < 0:
        raise InsufficientBalanceError(
            f"Booking {minutes} minutes would leave a balance of {new_balance} minutes"
        )

    entry = await append_entry(
        session,
        employee_id,
        LedgerEntryType.TAKEN,
        -minutes,
        period_key=leave_request_id,
        leave_request_id=leave_request_id,
        created_by=created_by,
        notes=notes or "Leave approved",
    )
    after = await sync_cached_balance(session, employee_id, commit=False)
    await session.commit()

    logger.info(
        "Leave taken employee=%s request=%s minutes=%d balance=%d->%d",
        employee_id,
        leave_request_id,
        minutes,
        before.balance_minutes,
        after.balance_minutes,
    )
    return LeaveBookingResult(before.balance_minutes, after.balance_minutes, entry)


async def reverse_leave_taken(
    session: AsyncSession,
    employee_id: uuid.UUID,
    leave_request_id: str,
    *,
    created_by: uuid.UUID | None = None,
    notes: str | None = None,
) -> LeaveBookingResult:
    """Give back the minutes booked for a cancelled leave request.

    The TAKEN entry stays; a positive ADJUSTMENT offsets it. The store allows
    one reversal per request, so reversing the same request twice, even
    concurrently, books it once and the second call is a no-op.
    """
    taken = await query_by_employee(
        session,
        employee_id,
        entry_types=[LedgerEntryType.TAKEN],
        period_key=leave_request_id,
    )
    if not taken:
        raise NotFoundError(f"No leave booked for request {leave_request_id}")

    before = await summarize(session, employee_id)
    period_key = cancel_period_key(leave_request_id)
    try:
        entry = await append_entry(
            session,
            employee_id,
            LedgerEntryType.ADJUSTMENT,
            -sum(e.amount_minutes for e in taken),
            period_key=period_key,
            leave_request_id=leave_request_id,
            created_by=created_by,
            notes=notes or "Cancellation reversal",
        )
    except DuplicateKeyError:
        logger.info("Leave already reversed employee=%s request=%s", employee_id, leave_request_id)
        reversed_entries = await query_by_employee(
            session,
            employee_id,
            entry_types=[LedgerEntryType.ADJUSTMENT],
            period_key=period_key,
        )
        await session.commit()
        return LeaveBookingResult(before.balance_minutes, before.balance_minutes, reversed_entries[0])

    after = await sync_cached_balance(session, employee_id, commit=False)
    await session.commit()

    logger.info("Leave reversed employee=%s request=%s", employee_id, leave_request_id)
    return LeaveBookingResult(before.balance_minutes, after.balance_minutes, entry)


async def record_adjustment(
    session: AsyncSession,
    employee_id: uuid.UUID,
    amount_minutes: int,
    *,
    notes: str,
    created_by: uuid.UUID | None = None,
    as_of: date | None = None,
) -> LeaveLedgerEntry:
    """Book an HR correction as an ADJUSTMENT entry and refresh the cache."""
    await seed_from_profile(session, employee_id, as_of=as_of, created_by=created_by, commit=False)
    entry = await append_entry(
        session,
        employee_id,
        LedgerEntryType.ADJUSTMENT,
        amount_minutes,
        created_by=created_by,
        notes=notes,
    )
    await sync_cached_balance(session, employee_id, commit=False)
    await session.commit()
    return entry


async def record_carryover(
    session: AsyncSession,
    employee_id: uuid.UUID,
    year: int,
    amount_minutes: int,
    *,
    notes: str | None = None,
    created_by: uuid.UUID | None = None,
    as_of: date | None = None,
) -> LeaveLedgerEntry:
    """Set a year's carryover and refresh the cache."""
    await seed_from_profile(session, employee_id, as_of=as_of, created_by=created_by, commit=False)
    entry = await set_carryover(
        session,
        employee_id,
        year,
        amount_minutes,
        notes=notes,
        created_by=created_by,
        commit=False,
    )
    await sync_cached_balance(session, employee_id, commit=False)
    await session.commit()
    return entry
