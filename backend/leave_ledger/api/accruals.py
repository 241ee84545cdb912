# ruff: noqa: B008, TC001, TC003
"""API endpoint for triggering accrual runs."""

from __future__ import annotations

from fastapi import APIRouter

from leave_ledger.api.deps import ActorDep, PolicyDep
from leave_ledger.db import SessionDep
from leave_ledger.schemas.accrual import (
    AccrualRunResponse,
    EmployeeAccrualResponse,
    RunAccrualsRequest,
)
from leave_ledger.services.accrual import run_accruals

accruals_router = APIRouter(
    prefix="/accruals",
    tags=["accruals"],
)


@accruals_router.post("/run", response_model=AccrualRunResponse)
async def trigger_accruals(
    payload: RunAccrualsRequest,
    session: SessionDep,
    actor: ActorDep,
    policy: PolicyDep,
) -> AccrualRunResponse:
    """Seed and accrue up to ``as_of`` for every active employee, or just one.

    Safe to replay for backfills: months already booked are not booked again.
    """
    result = await run_accruals(
        session,
        payload.as_of,
        employee_id=payload.employee_id,
        policy=policy,
        created_by=actor.user_id,
    )
    return AccrualRunResponse(
        as_of=result.as_of,
        processed=result.processed,
        accrued=result.accrued,
        skipped=result.skipped,
        errors=result.errors,
        results=[EmployeeAccrualResponse.model_validate(d) for d in result.details],
    )
