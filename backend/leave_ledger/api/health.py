import logging
from typing import Literal

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import text

from leave_ledger.config import get_settings
from leave_ledger.db import SessionDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Liveness of the ledger service and its database."""

    status: Literal["ok", "degraded"]
    app: str
    version: str
    environment: str
    database: bool


@router.get("/health", response_model=HealthResponse)
async def health(session: SessionDep) -> HealthResponse:
    """Report whether the ledger store answers queries."""
    settings = get_settings()

    database = True
    try:
        await session.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Health check: ledger store unreachable")
        database = False

    return HealthResponse(
        status="ok" if database else "degraded",
        app=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        database=database,
    )
