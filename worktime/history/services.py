"""Bounded, deduplicated calculation history persisted as one JSON blob."""
from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Callable, Protocol
from uuid import uuid4

from flask import Flask, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..calculator.services import (
    HOURS_PER_CALENDAR_DAY,
    MINUTES_PER_HOUR,
    CalculationInput,
    CalculationResult,
    InvalidInputError,
    carry_overflow,
)
from ..extensions import db
from .models import StoredValue

DEFAULT_CAPACITY = 10
EXTENSION_KEY = "worktime_history"


class CorruptHistoryError(ValueError):
    """Raised when persisted history cannot be trusted."""


class PersistenceError(RuntimeError):
    """Base class for failures of the backing key-value store."""


class PersistenceWriteError(PersistenceError):
    """Raised when the key-value store rejects a write."""


class PersistenceReadError(PersistenceError):
    """Raised when the key-value store cannot be read."""


class KeyValueStore(Protocol):
    """String storage addressed by key."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class DatabaseKeyValueStore:
    """Key-value store kept in the ``stored_value`` table."""

    def get(self, key: str) -> str | None:
        try:
            row = db.session.get(StoredValue, key)
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise PersistenceReadError(f"Unable to read '{key}': {exc}") from exc
        return row.value if row else None

    def set(self, key: str, value: str) -> None:
        try:
            row = db.session.get(StoredValue, key)
            if row is None:
                row = StoredValue(key=key, value=value)
            else:
                row.value = value
            db.session.add(row)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise PersistenceWriteError(f"Unable to write '{key}': {exc}") from exc

    def remove(self, key: str) -> None:
        try:
            StoredValue.query.filter_by(key=key).delete()
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise PersistenceWriteError(f"Unable to remove '{key}': {exc}") from exc


def _now() -> datetime:
    """Return the current UTC timestamp."""

    return datetime.now(UTC)


def generate_entry_id(created_at: datetime) -> str:
    """Return an identifier built from the timestamp and a random suffix."""

    return f"{int(created_at.timestamp() * 1000)}{uuid4().hex[:9]}"


@dataclass(frozen=True)
class HistoryEntry:
    """One recorded calculation."""

    id: str
    created_at: datetime
    calculation: CalculationInput
    result: CalculationResult

    def to_dict(self, currency_symbol: str = "€") -> dict[str, object]:
        """Return the entry for JSON consumers."""

        return {
            "id": self.id,
            "created_at": self.created_at.isoformat(timespec="seconds"),
            "input": self.calculation.to_dict(),
            "result": self.result.to_dict(currency_symbol),
        }


def _format_timestamp(value: datetime) -> str:
    stamp = value.astimezone(UTC).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


def entry_to_storage(entry: HistoryEntry) -> dict[str, Any]:
    """Return the persisted document for an entry."""

    result = entry.result
    return {
        "id": entry.id,
        "timestamp": _format_timestamp(entry.created_at),
        "monthlyIncome": entry.calculation.monthly_income,
        "itemPrice": entry.calculation.item_price,
        "hoursPerDay": entry.calculation.hours_per_day,
        "daysPerWeek": entry.calculation.days_per_week,
        "result": {
            "days": result.continuous_time.days,
            "hours": result.continuous_time.hours,
            "minutes": result.continuous_time.minutes,
            "workingDays": result.working_time.days,
            "workingHours": result.working_time.hours,
            "workingMinutes": result.working_time.minutes,
            "hourlyRate": result.hourly_rate,
        },
    }


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError as exc:
            raise CorruptHistoryError(f"Unreadable timestamp {value!r}") from exc
    elif _is_number(value) and math.isfinite(value):
        try:
            parsed = datetime.fromtimestamp(value / 1000, UTC)
        except (OverflowError, OSError, ValueError) as exc:
            raise CorruptHistoryError(f"Timestamp {value!r} is out of range") from exc
    else:
        raise CorruptHistoryError("Timestamp must be an ISO string or epoch milliseconds")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _read_count(
    data: dict[str, Any],
    key: str,
    *,
    upper: float | None = None,
    maximum: int | None = None,
) -> int:
    value = data.get(key)
    if (
        not _is_number(value)
        or not math.isfinite(value)
        or value != int(value)
        or value < 0
    ):
        raise CorruptHistoryError(f"'{key}' must be a non-negative whole number")
    if upper is not None and value >= upper:
        raise CorruptHistoryError(f"'{key}' must be below {upper:g}")
    if maximum is not None and value > maximum:
        raise CorruptHistoryError(f"'{key}' must be at most {maximum}")
    return int(value)


def _result_from_storage(data: Any, hours_per_day: float) -> CalculationResult:
    if not isinstance(data, dict):
        raise CorruptHistoryError("Entry result must be an object")

    rate = data.get("hourlyRate")
    if not _is_number(rate) or not math.isfinite(rate) or rate <= 0:
        raise CorruptHistoryError("'hourlyRate' must be a positive number")

    # Older entries may hold an uncarried "60" minutes.
    continuous = carry_overflow(
        _read_count(data, "days"),
        _read_count(data, "hours", upper=HOURS_PER_CALENDAR_DAY),
        _read_count(data, "minutes", maximum=MINUTES_PER_HOUR),
        HOURS_PER_CALENDAR_DAY,
    )
    working = carry_overflow(
        _read_count(data, "workingDays"),
        _read_count(data, "workingHours", upper=hours_per_day),
        _read_count(data, "workingMinutes", maximum=MINUTES_PER_HOUR),
        hours_per_day,
    )
    return CalculationResult(
        hourly_rate=float(rate), continuous_time=continuous, working_time=working
    )


def entry_from_storage(data: Any) -> HistoryEntry:
    """Validate one persisted document and rebuild the entry."""

    if not isinstance(data, dict):
        raise CorruptHistoryError("History entry must be an object")

    entry_id = data.get("id")
    if not isinstance(entry_id, str) or not entry_id:
        raise CorruptHistoryError("History entry is missing its id")

    raw_fields = {
        "monthly_income": data.get("monthlyIncome"),
        "item_price": data.get("itemPrice"),
        "hours_per_day": data.get("hoursPerDay"),
        "days_per_week": data.get("daysPerWeek"),
    }
    for name, value in raw_fields.items():
        if not (isinstance(value, str) or _is_number(value)):
            raise CorruptHistoryError(f"Input field '{name}' is missing")

    calculation = CalculationInput.from_values(**raw_fields)
    try:
        values = calculation.parsed()
    except InvalidInputError as exc:
        raise CorruptHistoryError(f"Stored input is invalid: {exc}") from exc

    return HistoryEntry(
        id=entry_id,
        created_at=_parse_timestamp(data.get("timestamp")),
        calculation=calculation,
        result=_result_from_storage(data.get("result"), values["hours_per_day"]),
    )


@dataclass
class HistoryStore:
    """Own the in-memory history log and mirror it into a key-value store.

    Entries are kept newest first. Failures of the backing store never raise
    out of the public operations; the most recent one is kept on
    ``last_error`` for the caller to report.
    """

    storage: KeyValueStore
    key: str
    capacity: int = DEFAULT_CAPACITY
    clock: Callable[[], datetime] = _now
    id_factory: Callable[[datetime], str] = generate_entry_id
    entries: list[HistoryEntry] = field(default_factory=list)
    last_error: Exception | None = None

    def snapshot(self) -> tuple[HistoryEntry, ...]:
        return tuple(self.entries)

    def most_recent(self) -> HistoryEntry | None:
        """Return the newest entry, if any."""

        return self.entries[0] if self.entries else None

    def find(self, entry_id: str) -> HistoryEntry | None:
        return next((entry for entry in self.entries if entry.id == entry_id), None)

    def load_history(self) -> tuple[HistoryEntry, ...]:
        """Replace the in-memory log with the persisted one.

        A missing key gives an empty log. An unreadable or malformed blob
        gives an empty log and a :class:`CorruptHistoryError` on
        ``last_error``; individually invalid entries are dropped.
        """

        self.last_error = None
        self.entries = []

        try:
            raw = self.storage.get(self.key)
        except PersistenceError as exc:
            self.last_error = exc
            return self.snapshot()

        if raw is None:
            return self.snapshot()

        try:
            documents = json.loads(raw)
        except ValueError as exc:
            self.last_error = CorruptHistoryError(f"History blob is not valid JSON: {exc}")
            return self.snapshot()

        if not isinstance(documents, list):
            self.last_error = CorruptHistoryError("History blob must be a list of entries")
            return self.snapshot()

        loaded: list[HistoryEntry] = []
        problems: list[str] = []
        for index, document in enumerate(documents):
            try:
                entry = entry_from_storage(document)
            except CorruptHistoryError as exc:
                problems.append(f"#{index}: {exc}")
                continue
            if loaded and loaded[-1].calculation == entry.calculation:
                continue
            loaded.append(entry)

        self.entries = loaded[: self.capacity]
        if problems:
            self.last_error = CorruptHistoryError(
                f"Dropped {len(problems)} invalid history entries ({'; '.join(problems)})"
            )
        return self.snapshot()

    def record_calculation(
        self, calculation: CalculationInput, result: CalculationResult
    ) -> tuple[tuple[HistoryEntry, ...], bool]:
        """Prepend a new entry unless it repeats the newest one.

        Returns the log and whether an entry was added.
        """

        if not result.is_defined:
            raise ValueError("Calculations without a defined hourly rate cannot be recorded.")

        self.last_error = None
        head = self.most_recent()
        if head is not None and head.calculation == calculation:
            return self.snapshot(), False

        created_at = self.clock()
        entry = HistoryEntry(
            id=self.id_factory(created_at),
            created_at=created_at,
            calculation=calculation,
            result=result,
        )
        self.entries = [entry, *self.entries][: self.capacity]
        self._persist()
        return self.snapshot(), True

    def clear_history(self) -> tuple[HistoryEntry, ...]:
        """Empty the log and persist the empty state."""

        self.last_error = None
        self.entries = []
        self._persist()
        return self.snapshot()

    def _persist(self) -> None:
        payload = json.dumps([entry_to_storage(entry) for entry in self.entries])
        try:
            self.storage.set(self.key, payload)
        except PersistenceError as exc:
            self.last_error = exc


def init_history_store(app: Flask) -> HistoryStore:
    """Hydrate the history store for the app. Requires an app context.

    Load failures are left on ``last_error`` for the caller to report.
    """

    store = HistoryStore(
        storage=DatabaseKeyValueStore(),
        key=app.config.get("HISTORY_STORAGE_KEY", "work-time-calculator-history"),
        capacity=app.config.get("HISTORY_CAPACITY", DEFAULT_CAPACITY),
    )
    store.load_history()
    app.extensions[EXTENSION_KEY] = store

    return store


def get_history_store() -> HistoryStore:
    """Return the history store attached to the current app."""

    return current_app.extensions[EXTENSION_KEY]
