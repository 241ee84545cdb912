"""Tests for monthly accrual math, the idempotent accrual engine and accrual runs."""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

import pytest

from leave_ledger.exceptions import MissingLeaveConfigError, NotFoundError
from leave_ledger.models.enums import LeaveUnit, LedgerEntryType
from leave_ledger.schemas.policy import LeavePolicySettings
from leave_ledger.services.accrual import (
    _iter_months,
    compute_period_accrual,
    ensure_accrual_up_to_date,
    monthly_accrual_minutes,
    period_key_for,
    run_accruals,
)
from leave_ledger.services.balance import get_cached_balance, summarize
from leave_ledger.services.ledger import count_by_employee, query_by_employee
from leave_ledger.services.opening import seed_from_profile

if TYPE_CHECKING:
    from collections.abc import Callable

    from httpx import AsyncClient
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_ledger.services.employee import EmployeeLeaveProfile

POLICY_2026 = LeavePolicySettings(accrual_start_date=date(2026, 1, 1))


async def _accrual_periods(session: AsyncSession, employee_id: uuid.UUID) -> dict[str, int]:
    entries = await query_by_employee(session, employee_id, entry_types=[LedgerEntryType.ACCRUAL])
    return {e.period_key: e.amount_minutes for e in entries if e.period_key is not None}


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


class TestMonthlyAccrualMinutes:
    @pytest.mark.parametrize("annual", [12000, 1000, 7, 6030, 9999])
    def test_twelve_months_sum_to_annual(self, annual: int) -> None:
        assert sum(monthly_accrual_minutes(annual, m) for m in range(1, 13)) == annual

    def test_months_differ_by_at_most_one_minute(self) -> None:
        amounts = [monthly_accrual_minutes(1000, m) for m in range(1, 13)]
        assert set(amounts) == {83, 84}

    def test_even_split(self) -> None:
        assert monthly_accrual_minutes(12000, 5) == 1000

    def test_zero_entitlement(self) -> None:
        assert monthly_accrual_minutes(0, 1) == 0


class TestComputePeriodAccrual:
    def test_full_month(self) -> None:
        assert compute_period_accrual(12000, 2026, 3, date(2020, 1, 1)) == 1000

    def test_start_mid_month_is_prorated(self) -> None:
        # April has 30 days; employed from the 16th covers 15 of them.
        assert compute_period_accrual(12000, 2026, 4, date(2026, 4, 16)) == 500

    def test_end_mid_month_is_prorated(self) -> None:
        assert compute_period_accrual(12000, 2026, 6, date(2020, 1, 1), date(2026, 6, 10)) == 333

    def test_month_before_employment(self) -> None:
        assert compute_period_accrual(12000, 2026, 3, date(2026, 4, 1)) == 0

    def test_month_after_employment(self) -> None:
        assert compute_period_accrual(12000, 2026, 7, date(2020, 1, 1), date(2026, 6, 30)) == 0

    def test_leap_february(self) -> None:
        assert compute_period_accrual(12000, 2028, 2, date(2028, 2, 15)) == 1000 * 15 // 29


class TestPeriods:
    def test_period_key(self) -> None:
        assert period_key_for(2026, 3) == "2026-03"

    def test_iter_months_crosses_year(self) -> None:
        months = list(_iter_months(date(2025, 11, 20), date(2026, 2, 1)))
        assert months == [(2025, 11), (2025, 12), (2026, 1), (2026, 2)]

    def test_iter_months_single_month(self) -> None:
        assert list(_iter_months(date(2026, 3, 1), date(2026, 3, 31))) == [(2026, 3)]


# ---------------------------------------------------------------------------
# ensure_accrual_up_to_date
# ---------------------------------------------------------------------------


async def test_accrues_through_current_month(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeLeaveProfile],
) -> None:
    employee = make_employee()

    result = await ensure_accrual_up_to_date(db_session, employee.id, date(2026, 3, 15), policy=POLICY_2026)

    assert result.periods_created == ["2026-01", "2026-02", "2026-03"]
    assert result.minutes_accrued == 3000
    assert await _accrual_periods(db_session, employee.id) == {"2026-01": 1000, "2026-02": 1000, "2026-03": 1000}


async def test_never_accrues_future_months(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeLeaveProfile],
) -> None:
    employee = make_employee()

    await ensure_accrual_up_to_date(db_session, employee.id, date(2026, 3, 15), policy=POLICY_2026)

    assert "2026-04" not in await _accrual_periods(db_session, employee.id)


async def test_repeated_calls_are_idempotent(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeLeaveProfile],
) -> None:
    employee = make_employee()
    as_of = date(2026, 3, 15)

    await ensure_accrual_up_to_date(db_session, employee.id, as_of, policy=POLICY_2026)
    before = await _accrual_periods(db_session, employee.id)
    second = await ensure_accrual_up_to_date(db_session, employee.id, as_of, policy=POLICY_2026)
    third = await ensure_accrual_up_to_date(db_session, employee.id, as_of, policy=POLICY_2026)

    assert second.periods_created == []
    assert third.minutes_accrued == 0
    assert await _accrual_periods(db_session, employee.id) == before
    assert await count_by_employee(db_session, employee.id) == 3


async def test_later_date_fills_only_new_months(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeLeaveProfile],
) -> None:
    employee = make_employee()

    await ensure_accrual_up_to_date(db_session, employee.id, date(2026, 2, 1), policy=POLICY_2026)
    result = await ensure_accrual_up_to_date(db_session, employee.id, date(2026, 4, 30), policy=POLICY_2026)

    assert result.periods_created == ["2026-03", "2026-04"]
    assert len(await _accrual_periods(db_session, employee.id)) == 4


async def test_first_month_prorated_from_employment_start(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeLeaveProfile],
) -> None:
    employee = make_employee(employment_start_date=date(2026, 4, 16))

    await ensure_accrual_up_to_date(db_session, employee.id, date(2026, 4, 30))

    assert await _accrual_periods(db_session, employee.id) == {"2026-04": 500}


async def test_stops_at_employment_end(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeLeaveProfile],
) -> None:
    employee = make_employee(employment_end_date=date(2026, 2, 14))

    await ensure_accrual_up_to_date(db_session, employee.id, date(2026, 5, 31), policy=POLICY_2026)

    # February 2026 has 28 days.
    assert await _accrual_periods(db_session, employee.id) == {"2026-01": 1000, "2026-02": 500}


async def test_full_year_sums_to_entitlement(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeLeaveProfile],
) -> None:
    employee = make_employee(leave_unit=LeaveUnit.HOURS, annual_leave_value=Decimal("100.5"))
    policy = LeavePolicySettings(accrual_start_date=date(2025, 1, 1))

    result = await ensure_accrual_up_to_date(db_session, employee.id, date(2025, 12, 31), policy=policy)

    assert len(result.periods_created) == 12
    assert result.minutes_accrued == 6030


async def test_as_of_before_employment_start(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeLeaveProfile],
) -> None:
    employee = make_employee(employment_start_date=date(2026, 6, 1))

    result = await ensure_accrual_up_to_date(db_session, employee.id, date(2026, 3, 15))

    assert result.periods_created == []
    assert await count_by_employee(db_session, employee.id) == 0


async def test_zero_entitlement_creates_nothing(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeLeaveProfile],
) -> None:
    employee = make_employee(annual_leave_value=Decimal("0"))

    result = await ensure_accrual_up_to_date(db_session, employee.id, date(2026, 3, 15), policy=POLICY_2026)

    assert result.periods_created == []


async def test_missing_entitlement_raises(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeLeaveProfile],
) -> None:
    employee = make_employee(annual_leave_value=None)

    with pytest.raises(MissingLeaveConfigError):
        await ensure_accrual_up_to_date(db_session, employee.id, date(2026, 3, 15))


async def test_missing_start_date_raises(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeLeaveProfile],
) -> None:
    employee = make_employee(employment_start_date=None)

    with pytest.raises(MissingLeaveConfigError):
        await ensure_accrual_up_to_date(db_session, employee.id, date(2026, 3, 15))


async def test_days_without_hours_per_day_raise(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeLeaveProfile],
) -> None:
    employee = make_employee(hours_per_day=None)

    with pytest.raises(MissingLeaveConfigError):
        await ensure_accrual_up_to_date(db_session, employee.id, date(2026, 3, 15))


async def test_unknown_employee_raises(db_session: AsyncSession) -> None:
    with pytest.raises(NotFoundError):
        await ensure_accrual_up_to_date(db_session, uuid.uuid4(), date(2026, 3, 15))


# ---------------------------------------------------------------------------
# Ledger start
# ---------------------------------------------------------------------------


async def test_seeded_employee_accrues_only_from_seeding_month(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeLeaveProfile],
) -> None:
    employee = make_employee(leave_balance_legal=Decimal("5"), leave_balance_carryover=Decimal("1"))
    await seed_from_profile(db_session, employee.id, as_of=date(2026, 3, 15))

    result = await ensure_accrual_up_to_date(db_session, employee.id, date(2026, 5, 20))

    # Hired in 2020, but everything before March 2026 is in the opening balance.
    assert result.periods_created == ["2026-03", "2026-04", "2026-05"]
    summary = await summarize(db_session, employee.id)
    assert summary.balance_minutes == 2400 + 480 + 3000


async def test_seeding_month_accrues_in_full(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeLeaveProfile],
) -> None:
    employee = make_employee()
    await seed_from_profile(db_session, employee.id, as_of=date(2026, 3, 28))

    await ensure_accrual_up_to_date(db_session, employee.id, date(2026, 3, 31))

    assert await _accrual_periods(db_session, employee.id) == {"2026-03": 1000}


async def test_unseeded_ledger_falls_back_to_employment_start(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeLeaveProfile],
) -> None:
    employee = make_employee(employment_start_date=date(2025, 11, 1))

    result = await ensure_accrual_up_to_date(db_session, employee.id, date(2026, 1, 31))

    assert result.periods_created == ["2025-11", "2025-12", "2026-01"]


async def test_mid_month_accrual_start_is_prorated(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeLeaveProfile],
) -> None:
    employee = make_employee()
    policy = LeavePolicySettings(accrual_start_date=date(2026, 3, 16))

    await ensure_accrual_up_to_date(db_session, employee.id, date(2026, 4, 30), policy=policy)

    # March has 31 days; accruing from the 16th covers 16 of them.
    assert await _accrual_periods(db_session, employee.id) == {"2026-03": 516, "2026-04": 1000}


async def test_hire_after_seeding_prorates_from_hire_date(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeLeaveProfile],
) -> None:
    employee = make_employee(employment_start_date=date(2026, 4, 16))
    await seed_from_profile(db_session, employee.id, as_of=date(2026, 3, 10))

    await ensure_accrual_up_to_date(db_session, employee.id, date(2026, 4, 30))

    assert await _accrual_periods(db_session, employee.id) == {"2026-04": 500}


# ---------------------------------------------------------------------------
# run_accruals
# ---------------------------------------------------------------------------


async def test_run_accruals_processes_active_employees(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeLeaveProfile],
) -> None:
    seeded = make_employee(leave_balance_legal=Decimal("5"))
    plain = make_employee()
    make_employee(is_active=False)
    unconfigured = make_employee(annual_leave_value=None)

    result = await run_accruals(db_session, date(2026, 2, 10))

    assert result.processed == 3
    assert result.accrued == 2
    assert result.skipped == 1
    assert result.errors == 0

    cache = await get_cached_balance(db_session, seeded.id)
    assert cache is not None
    # Seeded on 2026-02-10, so only February accrues on top of the legacy balance.
    assert cache.balance_minutes == 2400 + 1000
    assert (await get_cached_balance(db_session, plain.id)) is not None
    assert await count_by_employee(db_session, unconfigured.id) == 0

    skipped = next(d for d in result.details if d["employee_id"] == unconfigured.id)
    assert "error" in skipped


async def test_run_accruals_replay_accrues_nothing(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeLeaveProfile],
) -> None:
    employee = make_employee()

    await run_accruals(db_session, date(2026, 2, 10))
    replay = await run_accruals(db_session, date(2026, 2, 10))

    assert replay.accrued == 0
    assert replay.skipped == 1
    assert await count_by_employee(db_session, employee.id, entry_types=[LedgerEntryType.ACCRUAL]) == 1


async def test_run_accruals_single_employee(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeLeaveProfile],
) -> None:
    target = make_employee()
    other = make_employee()

    result = await run_accruals(db_session, date(2026, 1, 31), employee_id=target.id)

    assert result.processed == 1
    assert await count_by_employee(db_session, other.id) == 0


async def test_run_accruals_unknown_employee(db_session: AsyncSession) -> None:
    with pytest.raises(NotFoundError):
        await run_accruals(db_session, date(2026, 1, 31), employee_id=uuid.uuid4())


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------


async def test_run_accruals_endpoint(
    async_client: AsyncClient,
    make_employee: Callable[..., EmployeeLeaveProfile],
) -> None:
    employee = make_employee(employment_start_date=date(2026, 1, 1))

    resp = await async_client.post("/accruals/run", json={"as_of": "2026-03-15"})

    assert resp.status_code == 200
    data = resp.json()
    assert data["as_of"] == "2026-03-15"
    assert data["processed"] == 1
    assert data["accrued"] == 1
    assert data["results"][0]["employee_id"] == str(employee.id)
    assert data["results"][0]["periods_created"] == ["2026-03"]
    assert data["results"][0]["seeded"] is True


async def test_run_accruals_endpoint_unknown_employee(async_client: AsyncClient) -> None:
    resp = await async_client.post("/accruals/run", json={"employee_id": str(uuid.uuid4())})

    assert resp.status_code == 404
    assert resp.json()["error"] == "NotFoundError"
