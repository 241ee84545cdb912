"""Accrual engine: monthly ACCRUAL entries derived from the annual entitlement."""

from __future__ import annotations

import logging
from calendar import monthrange
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING

from leave_ledger.exceptions import AppError, MissingLeaveConfigError
from leave_ledger.models.enums import LedgerEntryType
from leave_ledger.services.balance import sync_cached_balance
from leave_ledger.services.employee import get_employee_profile, get_employee_service
from leave_ledger.services.ledger import query_by_employee, upsert_by_key
from leave_ledger.services.opening import get_ledger_start, seed_from_profile

if TYPE_CHECKING:
    import uuid
    from collections.abc import Iterator

    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_ledger.schemas.policy import LeavePolicySettings
    from leave_ledger.services.employee import EmployeeLeaveProfile

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Result dataclasses
# ---------------------------------------------------------------------------


@dataclass
class AccrualResult:
    """Entries created for one employee by ensure_accrual_up_to_date."""

    employee_id: uuid.UUID
    as_of: date
    periods_created: list[str] = field(default_factory=list)
    minutes_accrued: int = 0


@dataclass
class AccrualRunResult:
    """Summary of an accrual run over several employees."""

    as_of: date
    processed: int = 0
    accrued: int = 0
    skipped: int = 0
    errors: int = 0
    details: list[dict[str, object]] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Pure computation helpers (no DB)
# ---------------------------------------------------------------------------


def period_key_for(year: int, month: int) -> str:
    """Period key of a monthly accrual, e.g. ``2026-03``."""
    return f"{year:04d}-{month:02d}"


def _iter_months(start: date, end: date) -> Iterator[tuple[int, int]]:
    """Yield (year, month) for every month from start's month through end's month."""
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        yield year, month
        month += 1
        if month > 12:
            year, month = year + 1, 1


def monthly_accrual_minutes(annual_minutes: int, month: int) -> int:
    """Accrual for calendar month ``month`` (1-12) before pro-ration.

    Distributes the annual entitlement over cumulative floors so that the
    twelve months always add up to exactly ``annual_minutes``.
    """
    return (annual_minutes * month) // 12 - (annual_minutes * (month - 1)) // 12


def compute_period_accrual(
    annual_minutes: int,
    year: int,
    month: int,
    accrue_from: date,
    accrue_until: date | None = None,
) -> int:
    """Accrual for one month, pro-rated by the days inside [accrue_from, accrue_until].

    ``accrue_from`` is the later of the employment start and the ledger
    start; ``accrue_until`` is the employment end, if any. All arithmetic
    uses integers to avoid float drift.
    """
    base = monthly_accrual_minutes(annual_minutes, month)
    if base <= 0:
        return 0

    _, days_in_month = monthrange(year, month)
    month_start = date(year, month, 1)
    month_end = date(year, month, days_in_month)

    active_start = max(accrue_from, month_start)
    active_end = min(accrue_until, month_end) if accrue_until is not None else month_end
    active_days = (active_end - active_start).days + 1

    if active_days <= 0:
        return 0
    if active_days >= days_in_month:
        return base

    return (base * active_days) // days_in_month


def _resolve_accrual_window(
    profile: EmployeeLeaveProfile,
    employment_start: date,
    as_of: date,
    policy: LeavePolicySettings | None,
    ledger_start: date | None = None,
) -> tuple[date, date] | None:
    """Return the first and last day that may accrue, or None if nothing may.

    Accrual begins at the latest of the employment start, the month the
    employee's ledger was seeded and the policy's global accrual start.
    """
    start = employment_start
    if ledger_start is not None:
        start = max(start, ledger_start)
    if policy is not None and policy.accrual_start_date is not None:
        start = max(start, policy.accrual_start_date)

    end = as_of
    if profile.employment_end_date is not None:
        end = min(end, profile.employment_end_date)

    if start > end:
        return None
    return start, end


# ---------------------------------------------------------------------------
# Per-employee accrual
# ---------------------------------------------------------------------------


async def ensure_accrual_up_to_date(
    session: AsyncSession,
    employee_id: uuid.UUID,
    as_of: date | None = None,
    *,
    policy: LeavePolicySettings | None = None,
    created_by: uuid.UUID | None = None,
    commit: bool = True,
) -> AccrualResult:
    """Insert every missing monthly ACCRUAL entry up to and including as_of's month.

    Idempotent: periods that already have an entry are left alone and new ones
    go through upsert_by_key, so any number of calls for the same employee and
    date leave the same ledger. No period after as_of's month is ever created.

    Raises MissingLeaveConfigError when the annual entitlement or the
    employment start date is missing, and NotFoundError for unknown employees.
    """
    if as_of is None:
        as_of = date.today()

    result = AccrualResult(employee_id=employee_id, as_of=as_of)

    profile = await get_employee_profile(employee_id)
    annual_minutes = profile.annual_entitlement_minutes
    if annual_minutes is None or annual_minutes < 0:
        raise MissingLeaveConfigError(f"Annual leave entitlement is not configured for employee {employee_id}")

    employment_start = profile.employment_start_date
    if employment_start is None:
        raise MissingLeaveConfigError(f"Employment start date is not configured for employee {employee_id}")

    ledger_start = await get_ledger_start(session, employee_id)
    window = _resolve_accrual_window(profile, employment_start, as_of, policy, ledger_start)
    if window is None:
        return result
    start, end = window

    existing: set[str] = set()
    for year in range(start.year, end.year + 1):
        entries = await query_by_employee(
            session,
            employee_id,
            entry_types=[LedgerEntryType.ACCRUAL],
            period_key_prefix=f"{year:04d}-",
        )
        existing.update(e.period_key for e in entries if e.period_key is not None)

    for year, month in _iter_months(start, end):
        period_key = period_key_for(year, month)
        if period_key in existing:
            continue

        amount = compute_period_accrual(annual_minutes, year, month, start, profile.employment_end_date)
        if amount <= 0:
            continue

        await upsert_by_key(
            session,
            employee_id,
            LedgerEntryType.ACCRUAL,
            period_key,
            amount,
            created_by=created_by,
            notes=f"Monthly accrual {period_key}",
        )
        result.periods_created.append(period_key)
        result.minutes_accrued += amount

    if result.periods_created:
        logger.info(
            "Accrued employee=%s periods=%s minutes=%d as_of=%s",
            employee_id,
            ",".join(result.periods_created),
            result.minutes_accrued,
            as_of,
        )

    if commit:
        await session.commit()
    return result


# ---------------------------------------------------------------------------
# Accrual run over all employees
# ---------------------------------------------------------------------------


async def run_accruals(
    session: AsyncSession,
    as_of: date | None = None,
    *,
    employee_id: uuid.UUID | None = None,
    policy: LeavePolicySettings | None = None,
    created_by: uuid.UUID | None = None,
) -> AccrualRunResult:
    """Seed, accrue and sync every active employee (or only ``employee_id``).

    Each employee is committed on its own; a failure is logged and counted
    without affecting the others.
    """
    if as_of is None:
        as_of = date.today()

    result = AccrualRunResult(as_of=as_of)

    if employee_id is not None:
        employee_ids = [(await get_employee_profile(employee_id)).id]
    else:
        employee_ids = [e.id for e in await get_employee_service().list_employees(active_only=True)]

    for eid in employee_ids:
        result.processed += 1
        try:
            seeded = await seed_from_profile(session, eid, as_of=as_of, created_by=created_by, commit=False)
            accrual = await ensure_accrual_up_to_date(
                session, eid, as_of, policy=policy, created_by=created_by, commit=False
            )
            await sync_cached_balance(session, eid, commit=False)
            await session.commit()
        except AppError as exc:
            await session.rollback()
            logger.warning("Accrual skipped for employee=%s: %s", eid, exc.message)
            result.skipped += 1
            result.details.append({"employee_id": eid, "error": exc.message})
            continue
        except Exception:
            await session.rollback()
            logger.exception("Error processing accrual for employee=%s", eid)
            result.errors += 1
            result.details.append({"employee_id": eid, "error": "internal error"})
            continue

        if accrual.periods_created:
            result.accrued += 1
        else:
            result.skipped += 1
        result.details.append(
            {
                "employee_id": eid,
                "seeded": seeded,
                "periods_created": accrual.periods_created,
                "minutes_accrued": accrual.minutes_accrued,
            }
        )

    logger.info(
        "Accrual run complete for %s: processed=%d accrued=%d skipped=%d errors=%d",
        as_of,
        result.processed,
        result.accrued,
        result.skipped,
        result.errors,
    )
    return result
