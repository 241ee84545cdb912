"""Carryover upserter: one replaceable CARRYOVER entry per employee and year."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from leave_ledger.models.enums import LedgerEntryType
from leave_ledger.services.ledger import upsert_by_key

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_ledger.models.ledger import LeaveLedgerEntry

logger = logging.getLogger(__name__)


def carryover_period_key(year: int) -> str:
    return str(year)


async def set_carryover(
    session: AsyncSession,
    employee_id: uuid.UUID,
    year: int,
    amount_minutes: int,
    *,
    notes: str | None = None,
    created_by: uuid.UUID | None = None,
    commit: bool = True,
) -> LeaveLedgerEntry:
    """Set the carryover brought into ``year``.

    Setting it again corrects the figure instead of adding to it, so HR can
    edit the value until it is final. Earlier values stay in the audit log.
    """
    entry = await upsert_by_key(
        session,
        employee_id,
        LedgerEntryType.CARRYOVER,
        carryover_period_key(year),
        amount_minutes,
        created_by=created_by,
        notes=notes or f"Carryover {year}",
    )
    logger.info("Carryover set employee=%s year=%d minutes=%d", employee_id, year, amount_minutes)

    if commit:
        await session.commit()
    return entry
