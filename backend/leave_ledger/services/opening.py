"""Opening balance seeder: one-time bridge from the legacy flat balance fields.

Before the ledger existed, an employee's balance lived in flat fields on the
employee record. The first time a ledger-managed operation touches such an
employee, those fields are converted into an OPENING and a CARRYOVER entry.
From then on the ledger is the only source of truth and the flat fields are
never read again.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import TYPE_CHECKING

from leave_ledger.models.enums import LedgerEntryType
from leave_ledger.services.employee import get_employee_profile
from leave_ledger.services.ledger import count_by_employee, get_entry_by_key, upsert_by_key

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

OPENING_PERIOD_KEY = "OPENING"


async def seed_if_missing(
    session: AsyncSession,
    employee_id: uuid.UUID,
    legacy_vacation_minutes: int,
    legacy_carryover_minutes: int,
    *,
    as_of: date | None = None,
    created_by: uuid.UUID | None = None,
    commit: bool = True,
) -> bool:
    """Seed the ledger from legacy balances unless the employee already has entries.

    Returns True when entries were written. Any existing entry, seeded or
    organic, makes this a no-op, so the legacy balance is injected at most
    once. The OPENING key is unique per employee, which also holds under
    concurrent first calls.

    The OPENING entry's ``effective_date`` records the seeding date; accrual
    for that employee starts with the month it falls in.
    """
    if await count_by_employee(session, employee_id) > 0:
        return False

    seeded_on = as_of or date.today()
    await upsert_by_key(
        session,
        employee_id,
        LedgerEntryType.OPENING,
        OPENING_PERIOD_KEY,
        legacy_vacation_minutes,
        created_by=created_by,
        notes="Opening vacation balance",
        effective_date=seeded_on,
    )
    await upsert_by_key(
        session,
        employee_id,
        LedgerEntryType.CARRYOVER,
        str(seeded_on.year),
        legacy_carryover_minutes,
        created_by=created_by,
        notes="Opening carryover balance",
    )

    logger.info(
        "Seeded opening balance employee=%s vacation=%d carryover=%d seeded_on=%s",
        employee_id,
        legacy_vacation_minutes,
        legacy_carryover_minutes,
        seeded_on,
    )

    if commit:
        await session.commit()
    return True


async def seed_from_profile(
    session: AsyncSession,
    employee_id: uuid.UUID,
    *,
    as_of: date | None = None,
    created_by: uuid.UUID | None = None,
    commit: bool = True,
) -> bool:
    """Seed from the employee record's legacy fields (legal + extra, carryover)."""
    if await count_by_employee(session, employee_id) > 0:
        return False

    profile = await get_employee_profile(employee_id)
    return await seed_if_missing(
        session,
        employee_id,
        profile.legacy_vacation_minutes,
        profile.legacy_carryover_minutes,
        as_of=as_of,
        created_by=created_by,
        commit=commit,
    )


async def get_ledger_start(session: AsyncSession, employee_id: uuid.UUID) -> date | None:
    """First day of the month the employee was seeded, or None if never seeded.

    Months before it are already part of the legacy opening balance.
    """
    opening = await get_entry_by_key(session, employee_id, LedgerEntryType.OPENING, OPENING_PERIOD_KEY)
    if opening is None or opening.effective_date is None:
        return None
    return opening.effective_date.replace(day=1)
