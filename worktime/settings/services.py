"""Utility functions for managing global calculator preferences."""
from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..extensions import db
from .models import AppSettings

DEFAULT_TIMEZONE = "UTC"
DEFAULT_HOURS_PER_DAY = 8.0
DEFAULT_DAYS_PER_WEEK = 5.0


def _zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo(DEFAULT_TIMEZONE)


def ensure_app_settings() -> AppSettings:
    """Create application settings with defaults when missing."""

    settings = AppSettings.query.first()
    if settings is None:
        settings = AppSettings(
            timezone=DEFAULT_TIMEZONE,
            default_hours_per_day=DEFAULT_HOURS_PER_DAY,
            default_days_per_week=DEFAULT_DAYS_PER_WEEK,
        )
        db.session.add(settings)
        db.session.commit()
    return settings


def get_app_settings() -> AppSettings:
    """Return the persisted application settings."""

    return ensure_app_settings()


def get_active_timezone() -> ZoneInfo:
    """Return the zone used to display timestamps."""

    return _zone(ensure_app_settings().timezone or DEFAULT_TIMEZONE)


def update_preferences(
    *,
    timezone_name: str | None = None,
    hours_per_day: float | None = None,
    days_per_week: float | None = None,
) -> AppSettings:
    """Persist new preference values, leaving omitted ones untouched."""

    settings = ensure_app_settings()

    if timezone_name is not None:
        if not isinstance(timezone_name, str):
            raise ValueError("Timezone must be a zone name such as Europe/Berlin.")
        try:
            ZoneInfo(timezone_name)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone '{timezone_name}'.") from exc
        settings.timezone = timezone_name

    if hours_per_day is not None:
        if not 0 < hours_per_day <= 24:
            raise ValueError("Hours per day must be greater than 0 and at most 24.")
        settings.default_hours_per_day = hours_per_day

    if days_per_week is not None:
        if not 0 < days_per_week <= 7:
            raise ValueError("Days per week must be greater than 0 and at most 7.")
        settings.default_days_per_week = days_per_week

    db.session.add(settings)
    db.session.commit()
    return settings


def convert_to_active_timezone(value: datetime) -> datetime:
    """Convert a UTC datetime (naive or aware) to the configured timezone."""

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(get_active_timezone())


def format_datetime_for_display(value: datetime, fmt: str = "%b %d, %Y") -> str:
    return convert_to_active_timezone(value).strftime(fmt)


def serialize_preferences(settings: AppSettings) -> dict[str, object]:
    return {
        "timezone": settings.timezone,
        "default_hours_per_day": settings.default_hours_per_day,
        "default_days_per_week": settings.default_days_per_week,
    }
