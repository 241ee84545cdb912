# ruff: noqa: TC003
from __future__ import annotations

import uuid

from pydantic import BaseModel


class ActorContext(BaseModel):
    """Who is performing a ledger mutation, recorded as provenance only."""

    user_id: uuid.UUID | None = None
