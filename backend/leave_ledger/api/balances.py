# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Path, Query, status

from leave_ledger.api.deps import ActorDep, PolicyDep
from leave_ledger.db import SessionDep
from leave_ledger.exceptions import NotFoundError
from leave_ledger.models.enums import AuditAction, LedgerEntryType
from leave_ledger.models.ledger import LeaveLedgerEntry
from leave_ledger.schemas.balance import (
    BalanceSummary,
    CachedBalanceResponse,
    CreateAdjustmentRequest,
    EntryHistoryItem,
    LedgerEntryResponse,
    LedgerListResponse,
    SetCarryoverRequest,
)
from leave_ledger.services import balance as balance_service
from leave_ledger.services import leave as leave_service
from leave_ledger.services.accrual import ensure_accrual_up_to_date
from leave_ledger.services.audit import get_entry_history
from leave_ledger.services.ledger import count_by_employee, query_by_employee
from leave_ledger.services.opening import seed_from_profile

employee_balance_router = APIRouter(
    prefix="/employees/{employee_id}",
    tags=["balances"],
)


@employee_balance_router.get("/balance", response_model=CachedBalanceResponse)
async def get_balance(
    employee_id: uuid.UUID,
    session: SessionDep,
    policy: PolicyDep,
    fresh: bool = Query(default=False),
) -> CachedBalanceResponse:
    """Get the display balance.

    With ``fresh`` the ledger is seeded and accrued up to today before the
    cache is rebuilt; otherwise the cached projection is returned as-is.
    """
    cache = None if fresh else await balance_service.get_cached_balance(session, employee_id)
    if cache is None:
        today = date.today()
        await seed_from_profile(session, employee_id, as_of=today, commit=False)
        await ensure_accrual_up_to_date(session, employee_id, today, policy=policy, commit=False)
        await balance_service.sync_cached_balance(session, employee_id)
        cache = await balance_service.get_cached_balance(session, employee_id)
        if cache is None:
            raise NotFoundError(f"No cached balance for employee {employee_id}")
        return balance_service.build_cached_balance_response(cache, fresh=True)
    return balance_service.build_cached_balance_response(cache)


@employee_balance_router.get("/summary", response_model=BalanceSummary)
async def get_summary(
    employee_id: uuid.UUID,
    session: SessionDep,
) -> BalanceSummary:
    """Aggregate the ledger without touching the cache."""
    return await balance_service.summarize(session, employee_id)


@employee_balance_router.get("/ledger", response_model=LedgerListResponse)
async def get_ledger(
    employee_id: uuid.UUID,
    session: SessionDep,
    entry_type: LedgerEntryType | None = Query(default=None),
    period_prefix: str | None = Query(default=None, max_length=255),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=500),
) -> LedgerListResponse:
    """Get ledger entries for an employee in insertion order."""
    entry_types = [entry_type] if entry_type is not None else None
    total = await count_by_employee(session, employee_id, entry_types=entry_types, period_key_prefix=period_prefix)
    entries = await query_by_employee(
        session,
        employee_id,
        entry_types=entry_types,
        period_key_prefix=period_prefix,
        offset=offset,
        limit=limit,
    )
    return LedgerListResponse(
        items=[balance_service.build_ledger_entry_response(e) for e in entries],
        total=total,
    )


@employee_balance_router.get("/ledger/{entry_id}/history", response_model=list[EntryHistoryItem])
async def get_entry_audit_trail(
    employee_id: uuid.UUID,
    entry_id: uuid.UUID,
    session: SessionDep,
) -> list[EntryHistoryItem]:
    """Get every recorded version of a ledger entry, oldest first."""
    entry = await session.get(LeaveLedgerEntry, entry_id)
    if entry is None or entry.employee_id != employee_id:
        raise NotFoundError(f"Ledger entry {entry_id} not found for employee {employee_id}")

    return [
        EntryHistoryItem(
            id=log.id,
            action=AuditAction(log.action),
            actor_id=log.actor_id,
            before=log.before_json,
            after=log.after_json,
            created_at=log.created_at,
        )
        for log in await get_entry_history(session, entry_id)
    ]


@employee_balance_router.post(
    "/adjustments",
    response_model=LedgerEntryResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_adjustment(
    employee_id: uuid.UUID,
    payload: CreateAdjustmentRequest,
    session: SessionDep,
    actor: ActorDep,
) -> LedgerEntryResponse:
    """Book an HR balance correction."""
    entry = await leave_service.record_adjustment(
        session,
        employee_id,
        payload.amount_minutes,
        notes=payload.notes,
        created_by=actor.user_id,
    )
    return balance_service.build_ledger_entry_response(entry)


@employee_balance_router.put("/carryover/{year}", response_model=LedgerEntryResponse)
async def put_carryover(
    employee_id: uuid.UUID,
    payload: SetCarryoverRequest,
    session: SessionDep,
    actor: ActorDep,
    year: int = Path(ge=2000, le=2100),
) -> LedgerEntryResponse:
    """Set or correct the carryover brought into a year."""
    entry = await leave_service.record_carryover(
        session,
        employee_id,
        year,
        payload.amount_minutes,
        notes=payload.notes,
        created_by=actor.user_id,
    )
    return balance_service.build_ledger_entry_response(entry)
