"""Convert an income, a schedule and a price into work time."""
from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any

WEEKS_PER_MONTH = 52 / 12
HOURS_PER_CALENDAR_DAY = 24
MINUTES_PER_HOUR = 60
MINUTES_PER_DAY = HOURS_PER_CALENDAR_DAY * MINUTES_PER_HOUR
MAX_DAYS_PER_WEEK = 7

INPUT_FIELDS: tuple[tuple[str, str], ...] = (
    ("monthly_income", "Monthly income"),
    ("item_price", "Item price"),
    ("hours_per_day", "Hours per day"),
    ("days_per_week", "Days per week"),
)


class InvalidInputError(ValueError):
    """Raised when a calculation field is missing, non-numeric or out of range."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field


class DivisionByZeroError(ArithmeticError):
    """Raised when a schedule amounts to zero working hours per month."""


def _round_half_up(value: float) -> int:
    """Round to the nearest whole number with halves going up."""

    return int(Decimal(repr(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _normalize_raw(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


@dataclass(frozen=True)
class CalculationInput:
    """Raw calculation fields exactly as they were entered."""

    monthly_income: str
    item_price: str
    hours_per_day: str
    days_per_week: str

    @classmethod
    def from_values(
        cls,
        *,
        monthly_income: Any,
        item_price: Any,
        hours_per_day: Any,
        days_per_week: Any,
    ) -> CalculationInput:
        """Build an input from form or JSON values, keeping their text form."""

        return cls(
            monthly_income=_normalize_raw(monthly_income),
            item_price=_normalize_raw(item_price),
            hours_per_day=_normalize_raw(hours_per_day),
            days_per_week=_normalize_raw(days_per_week),
        )

    def parsed(self) -> dict[str, float]:
        """Return validated numeric values keyed by field name."""

        values: dict[str, float] = {}
        for field, label in INPUT_FIELDS:
            raw = getattr(self, field)
            if not raw.strip():
                raise InvalidInputError(field, f"{label} is required.")
            try:
                number = float(raw)
            except ValueError as exc:
                raise InvalidInputError(field, f"{label} must be a number.") from exc
            if not math.isfinite(number):
                raise InvalidInputError(field, f"{label} must be a finite number.")
            if number <= 0:
                raise InvalidInputError(field, f"{label} must be greater than zero.")
            values[field] = number

        if values["days_per_week"] > MAX_DAYS_PER_WEEK:
            raise InvalidInputError(
                "days_per_week", f"Days per week cannot exceed {MAX_DAYS_PER_WEEK}."
            )
        return values

    def to_dict(self) -> dict[str, str]:
        return {
            "monthly_income": self.monthly_income,
            "item_price": self.item_price,
            "hours_per_day": self.hours_per_day,
            "days_per_week": self.days_per_week,
        }


@dataclass(frozen=True)
class TimeBreakdown:
    """A duration split into days, hours and minutes."""

    days: int
    hours: int
    minutes: int

    @property
    def total_minutes(self) -> int:
        """Collapse the breakdown using calendar-day lengths."""

        return self.days * MINUTES_PER_DAY + self.hours * MINUTES_PER_HOUR + self.minutes

    @property
    def display(self) -> str:
        """Return compact text such as ``1d 4h 50m``."""

        return format_duration(self.days, self.hours, self.minutes)

    def to_dict(self) -> dict[str, object]:
        return {
            "days": self.days,
            "hours": self.hours,
            "minutes": self.minutes,
            "display": self.display,
        }


@dataclass(frozen=True)
class CalculationResult:
    """Hourly rate and the two time breakdowns for one calculation.

    ``hourly_rate`` is ``None`` when the schedule produced no working hours;
    both breakdowns are then ``None`` as well.
    """

    hourly_rate: float | None
    continuous_time: TimeBreakdown | None
    working_time: TimeBreakdown | None

    @classmethod
    def undefined(cls) -> CalculationResult:
        return cls(hourly_rate=None, continuous_time=None, working_time=None)

    @property
    def is_defined(self) -> bool:
        return self.hourly_rate is not None

    def to_dict(self, currency_symbol: str = "€") -> dict[str, object]:
        """Serialize the result for JSON consumers."""

        if not self.is_defined:
            return {
                "hourly_rate": None,
                "hourly_rate_display": "Undefined rate",
                "continuous_time": None,
                "working_time": None,
            }
        return {
            "hourly_rate": self.hourly_rate,
            "hourly_rate_display": format_currency(self.hourly_rate, currency_symbol),
            "continuous_time": self.continuous_time.to_dict(),
            "working_time": self.working_time.to_dict(),
        }


def format_duration(days: int, hours: int, minutes: int) -> str:
    """Join the non-zero parts of a duration, always showing something."""

    parts: list[str] = []
    if days > 0:
        parts.append(f"{days}d")
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0 or not parts:
        parts.append(f"{minutes}m")
    return " ".join(parts)


def format_currency(amount: float, symbol: str = "€") -> str:
    """Return an amount with two decimals and the currency symbol."""

    quantized = Decimal(repr(float(amount))).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{symbol}{quantized:,.2f}"


def monthly_working_hours(hours_per_day: float, days_per_week: float) -> float:
    """Return the average number of hours worked in a month."""

    working_days_per_month = days_per_week * WEEKS_PER_MONTH
    return working_days_per_month * hours_per_day


def hourly_rate_for(monthly_income: float, hours_per_day: float, days_per_week: float) -> float:
    """Return income per working hour for the schedule."""

    hours = monthly_working_hours(hours_per_day, days_per_week)
    if hours == 0:
        raise DivisionByZeroError("The schedule amounts to zero working hours per month.")
    return monthly_income / hours


def split_hours(hours_needed: float, day_length: float) -> TimeBreakdown:
    """Split a number of hours into days of ``day_length`` hours.

    Rounded minutes carry into hours, and hours that reach a full day carry
    into days, so ``minutes < 60`` and ``hours < day_length`` always hold.
    """

    days = math.floor(hours_needed / day_length)
    remainder = hours_needed % day_length
    hours = math.floor(remainder)
    minutes = _round_half_up((remainder - hours) * MINUTES_PER_HOUR)
    return carry_overflow(days, hours, minutes, day_length)


def carry_overflow(days: int, hours: int, minutes: int, day_length: float) -> TimeBreakdown:
    """Fold a full hour of minutes into hours and a full day of time into days."""

    if minutes >= MINUTES_PER_HOUR:
        minutes -= MINUTES_PER_HOUR
        hours += 1
    if hours + minutes / MINUTES_PER_HOUR >= day_length:
        days += 1
        hours = 0
        minutes = 0
    return TimeBreakdown(days=days, hours=hours, minutes=minutes)


def compute_result(calculation: CalculationInput) -> CalculationResult:
    """Compute the hourly rate and work time needed to afford the item.

    Raises :class:`InvalidInputError` for unusable fields. A schedule that
    collapses to zero working hours yields :meth:`CalculationResult.undefined`.
    """

    values = calculation.parsed()
    try:
        rate = hourly_rate_for(
            values["monthly_income"], values["hours_per_day"], values["days_per_week"]
        )
    except DivisionByZeroError:
        return CalculationResult.undefined()
    if rate == 0 or not math.isfinite(rate):
        return CalculationResult.undefined()

    hours_needed = values["item_price"] / rate
    if not math.isfinite(hours_needed):
        return CalculationResult.undefined()

    return CalculationResult(
        hourly_rate=rate,
        continuous_time=split_hours(hours_needed, HOURS_PER_CALENDAR_DAY),
        working_time=split_hours(hours_needed, values["hours_per_day"]),
    )
