"""Summary statistics over the calculation history for charts."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from ..calculator.services import (
    MINUTES_PER_DAY,
    MINUTES_PER_HOUR,
    CalculationInput,
    CalculationResult,
)
from ..history.services import HistoryEntry

COMPARISON_SIZE = 5
TREND_SIZE = 10
STABLE_THRESHOLD_PERCENT = 1.0

TREND_UP = "up"
TREND_DOWN = "down"
TREND_STABLE = "stable"


@dataclass(frozen=True)
class ComparisonPoint:
    """One bar of the history comparison chart."""

    label: str
    total_working_minutes: int
    hourly_rate: float
    monthly_income: str
    created_at: datetime

    @property
    def work_hours(self) -> float:
        return round(self.total_working_minutes / MINUTES_PER_HOUR, 1)


@dataclass(frozen=True)
class ComparisonSummary:
    max_work_hours: float
    average_hourly_rate: float


@dataclass(frozen=True)
class TrendPoint:
    """One point of the hourly rate trend, numbered from 1 oldest first."""

    index: int
    hourly_rate: float
    created_at: datetime
    item_price: str = ""
    monthly_income: str = ""

    @property
    def label(self) -> str:
        return f"#{self.index}"


@dataclass(frozen=True)
class TrendSummary:
    first: float
    last: float
    delta_percent: float
    maximum: float
    minimum: float
    average: float
    direction: str


@dataclass(frozen=True)
class TimeSplit:
    """On-the-clock minutes against the calendar span they occupy."""

    working_minutes: int
    non_working_minutes: int

    @property
    def elapsed_minutes(self) -> int:
        return self.working_minutes + self.non_working_minutes


def _chronological(entries: Sequence[HistoryEntry], limit: int) -> list[HistoryEntry]:
    if limit <= 0:
        return []
    return list(reversed(entries[:limit]))


def comparison_series(
    entries: Sequence[HistoryEntry],
    limit: int = COMPARISON_SIZE,
    *,
    currency_symbol: str = "€",
) -> list[ComparisonPoint]:
    """Return the newest ``limit`` entries, oldest first, as comparison bars."""

    return [
        ComparisonPoint(
            label=f"{currency_symbol}{entry.calculation.item_price}",
            total_working_minutes=entry.result.working_time.total_minutes,
            hourly_rate=entry.result.hourly_rate,
            monthly_income=entry.calculation.monthly_income,
            created_at=entry.created_at,
        )
        for entry in _chronological(entries, limit)
    ]


def comparison_summary(series: Sequence[ComparisonPoint]) -> ComparisonSummary | None:
    """Return the longest work time and the mean hourly rate, or ``None``."""

    if not series:
        return None
    return ComparisonSummary(
        max_work_hours=max(point.work_hours for point in series),
        average_hourly_rate=sum(point.hourly_rate for point in series) / len(series),
    )


def trend_series(
    entries: Sequence[HistoryEntry], limit: int = TREND_SIZE
) -> list[TrendPoint]:
    """Return hourly rates of the newest ``limit`` entries, oldest first."""

    return [
        TrendPoint(
            index=position,
            hourly_rate=entry.result.hourly_rate,
            created_at=entry.created_at,
            item_price=entry.calculation.item_price,
            monthly_income=entry.calculation.monthly_income,
        )
        for position, entry in enumerate(_chronological(entries, limit), start=1)
    ]


def classify_trend(delta_percent: float) -> str:
    """Name the direction of a percentage change."""

    if abs(delta_percent) < STABLE_THRESHOLD_PERCENT:
        return TREND_STABLE
    return TREND_UP if delta_percent > 0 else TREND_DOWN


def trend_summary(series: Sequence[TrendPoint]) -> TrendSummary | None:
    """Summarize a trend series; ``None`` when it has fewer than two points.

    A series starting at zero reports a change of 0 and is stable.
    """

    if len(series) < 2:
        return None

    rates = [point.hourly_rate for point in series]
    first, last = rates[0], rates[-1]
    delta_percent = (last - first) / first * 100 if first != 0 else 0.0

    return TrendSummary(
        first=first,
        last=last,
        delta_percent=delta_percent,
        maximum=max(rates),
        minimum=min(rates),
        average=sum(rates) / len(rates),
        direction=classify_trend(delta_percent),
    )


def time_split(calculation: CalculationInput, result: CalculationResult) -> TimeSplit:
    """Split the calendar days covered by the working time into work and rest."""

    hours_per_day = calculation.parsed()["hours_per_day"]
    working = result.working_time
    working_minutes = round(
        working.days * hours_per_day * MINUTES_PER_HOUR
        + working.hours * MINUTES_PER_HOUR
        + working.minutes
    )
    elapsed = working.days * MINUTES_PER_DAY + working.hours * MINUTES_PER_HOUR + working.minutes
    return TimeSplit(
        working_minutes=working_minutes,
        non_working_minutes=max(elapsed - working_minutes, 0),
    )
