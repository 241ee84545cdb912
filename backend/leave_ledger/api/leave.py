# ruff: noqa: B008, TC001, TC003
"""Leave request hooks: measure a span, book approved leave, reverse cancelled leave."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, status

from leave_ledger.api.deps import ActorDep, PolicyDep, RosterDep
from leave_ledger.db import SessionDep
from leave_ledger.schemas.leave import (
    LeaveBookingResponse,
    LeaveMinutesRequest,
    LeaveMinutesResponse,
    RecordLeaveTakenRequest,
)
from leave_ledger.services import leave as leave_service
from leave_ledger.services.balance import build_ledger_entry_response
from leave_ledger.services.employee import get_employee_profile

leave_minutes_router = APIRouter(
    prefix="/leave",
    tags=["leave"],
)

employee_leave_router = APIRouter(
    prefix="/employees/{employee_id}/leave-taken",
    tags=["leave"],
)


def _booking_response(result: leave_service.LeaveBookingResult) -> LeaveBookingResponse:
    return LeaveBookingResponse(
        old_balance_minutes=result.old_balance_minutes,
        new_balance_minutes=result.new_balance_minutes,
        entry=build_ledger_entry_response(result.entry) if result.entry is not None else None,
    )


@leave_minutes_router.post("/minutes", response_model=LeaveMinutesResponse)
async def calculate_minutes(
    payload: LeaveMinutesRequest,
    policy: PolicyDep,
    roster: RosterDep,
) -> LeaveMinutesResponse:
    """Measure a leave span in working minutes against the roster."""
    measured = leave_service.calculate_request_minutes(
        payload.start_date,
        payload.end_date,
        payload.start_time,
        payload.end_time,
        roster=payload.roster or roster,
        policy=policy,
    )
    return LeaveMinutesResponse(
        exact_minutes=measured.exact_minutes,
        requested_minutes=measured.requested_minutes,
        rounding_minutes=measured.rounding_minutes,
    )


@employee_leave_router.post("", response_model=LeaveBookingResponse, status_code=status.HTTP_201_CREATED)
async def record_leave_taken(
    employee_id: uuid.UUID,
    payload: RecordLeaveTakenRequest,
    session: SessionDep,
    actor: ActorDep,
    policy: PolicyDep,
    roster: RosterDep,
) -> LeaveBookingResponse:
    """Book an approved leave request against the employee's balance.

    Minutes come from the payload when the request already stores them,
    otherwise from the roster using the employee's working days.
    """
    minutes = payload.minutes
    if minutes is None:
        profile = await get_employee_profile(employee_id)
        minutes = leave_service.calculate_request_minutes(
            payload.start_date,
            payload.end_date,
            payload.start_time,
            payload.end_time,
            roster=roster,
            policy=policy,
            working_days=profile.working_days,
        ).requested_minutes

    result = await leave_service.record_leave_taken(
        session,
        employee_id,
        payload.leave_request_id,
        minutes,
        policy=policy,
        created_by=actor.user_id,
        notes=payload.notes,
        allow_negative_override=payload.allow_negative_override,
    )
    return _booking_response(result)


@employee_leave_router.post("/{leave_request_id}/reverse", response_model=LeaveBookingResponse)
async def reverse_leave_taken(
    employee_id: uuid.UUID,
    leave_request_id: str,
    session: SessionDep,
    actor: ActorDep,
) -> LeaveBookingResponse:
    """Give back the minutes of a cancelled leave request."""
    result = await leave_service.reverse_leave_taken(
        session,
        employee_id,
        leave_request_id,
        created_by=actor.user_id,
    )
    return _booking_response(result)
