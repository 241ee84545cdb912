from __future__ import annotations

from datetime import date, time
from typing import TYPE_CHECKING, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from leave_ledger.models.enums import Weekday

if TYPE_CHECKING:
    from leave_ledger.schemas.policy import LeavePolicySettings
    from leave_ledger.schemas.roster import Roster


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Garage Leave Ledger"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"
    database_url: str = "postgresql+asyncpg://garage:garage@db:5432/garage"
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Leave policy (settings group "leave").
    leave_rounding_minutes: int = 15
    leave_allow_negative_balance: bool = True
    leave_accrual_start_date: date | None = None

    # Planning roster (settings group "planning").
    roster_working_days: list[Weekday] = [Weekday.MON, Weekday.TUE, Weekday.WED, Weekday.THU, Weekday.FRI]
    roster_day_start: time = time(8, 30)
    roster_day_end: time = time(17, 0)
    roster_breaks: list[tuple[time, time]] = [(time(12, 0), time(12, 30))]


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def get_leave_policy(settings: Settings | None = None) -> LeavePolicySettings:
    """Build the leave policy passed explicitly into the ledger services."""
    from leave_ledger.schemas.policy import LeavePolicySettings

    settings = settings or get_settings()
    return LeavePolicySettings(
        rounding_minutes=settings.leave_rounding_minutes,
        allow_negative_balance=settings.leave_allow_negative_balance,
        accrual_start_date=settings.leave_accrual_start_date,
    )


def get_default_roster(settings: Settings | None = None) -> Roster:
    """Build the company-wide planning roster from settings."""
    from leave_ledger.schemas.roster import BreakInterval, Roster

    settings = settings or get_settings()
    return Roster(
        working_days=settings.roster_working_days,
        day_start=settings.roster_day_start,
        day_end=settings.roster_day_end,
        breaks=[BreakInterval(start=start, end=end) for start, end in settings.roster_breaks],
    )
