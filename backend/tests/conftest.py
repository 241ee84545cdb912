from __future__ import annotations

import os
import uuid
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from leave_ledger.db import build_engine, get_session
from leave_ledger.main import app
from leave_ledger.models import SQLModel
from leave_ledger.models.enums import LeaveUnit
from leave_ledger.services.employee import (
    EmployeeLeaveProfile,
    InMemoryEmployeeService,
    get_employee_service,
    set_employee_service,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Iterator

    from sqlalchemy.ext.asyncio import AsyncEngine

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite://")


@pytest.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    """Create a fresh schema per test.

    The default in-memory SQLite database disappears with the engine; a
    TEST_DATABASE_URL pointing at PostgreSQL is dropped again on teardown.
    """
    _engine = build_engine(TEST_DATABASE_URL)
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield _engine
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await _engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    """Yield a session whose commits are real; the schema is discarded after the test."""
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture(autouse=True)
def employees() -> Iterator[InMemoryEmployeeService]:
    """Install an empty employee directory for the duration of a test."""
    previous = get_employee_service()
    service = InMemoryEmployeeService()
    set_employee_service(service)
    yield service
    set_employee_service(previous)


@pytest.fixture
def make_employee(employees: InMemoryEmployeeService) -> Callable[..., EmployeeLeaveProfile]:
    """Seed a full-time employee: 8h days, 25 days a year, employed since 2020."""

    def _make(**overrides: Any) -> EmployeeLeaveProfile:
        fields: dict[str, Any] = {
            "id": uuid.uuid4(),
            "display_name": "Mechanic",
            "hours_per_day": Decimal("8"),
            "annual_leave_value": Decimal("25"),
            "leave_unit": LeaveUnit.DAYS,
            "employment_start_date": date(2020, 1, 1),
        }
        fields.update(overrides)
        profile = EmployeeLeaveProfile(**fields)
        employees.seed(profile)
        return profile

    return _make


@pytest.fixture
async def async_client(db_session: AsyncSession) -> AsyncIterator[AsyncClient]:
    """Async HTTP client with the database session dependency overridden."""

    async def _override_get_session() -> AsyncIterator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_session] = _override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
