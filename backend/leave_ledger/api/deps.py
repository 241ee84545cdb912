# ruff: noqa: B008, TC003
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import Depends, Header

from leave_ledger.config import get_default_roster, get_leave_policy
from leave_ledger.schemas.auth import ActorContext
from leave_ledger.schemas.policy import LeavePolicySettings
from leave_ledger.schemas.roster import Roster


async def get_actor_context(
    x_user_id: uuid.UUID | None = Header(default=None),
) -> ActorContext:
    """Extract the acting user from request headers, for provenance only."""
    return ActorContext(user_id=x_user_id)


ActorDep = Annotated[ActorContext, Depends(get_actor_context)]


def _leave_policy() -> LeavePolicySettings:
    return get_leave_policy()


def _roster() -> Roster:
    return get_default_roster()


PolicyDep = Annotated[LeavePolicySettings, Depends(_leave_policy)]
RosterDep = Annotated[Roster, Depends(_roster)]
