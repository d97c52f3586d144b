"""JSON feeds for the history comparison, trend and breakdown charts."""
from __future__ import annotations

from flask import current_app, jsonify, request

from ..history.services import get_history_store
from ..logging_service import log_manager
from ..settings.services import format_datetime_for_display
from . import bp
from .services import (
    COMPARISON_SIZE,
    TREND_SIZE,
    comparison_series,
    comparison_summary,
    time_split,
    trend_series,
    trend_summary,
)


def _json_error(message: str, *, status: int = 400):
    """Return a consistently formatted JSON error response."""

    response = jsonify({"success": False, "message": message})
    response.status_code = status
    return response


def _read_limit(default: int) -> int:
    raw = request.args.get("limit")
    if raw in (None, ""):
        return default
    try:
        limit = int(raw)
    except ValueError as exc:
        raise ValueError("Limit must be a whole number.") from exc
    if limit <= 0:
        raise ValueError("Limit must be greater than zero.")
    return limit


@bp.route("/api/comparison")
def api_comparison():
    """Work time and hourly rate of the most recent calculations."""

    try:
        limit = _read_limit(COMPARISON_SIZE)
    except ValueError as exc:
        return _json_error(str(exc))

    symbol = current_app.config.get("CURRENCY_SYMBOL", "€")
    series = comparison_series(get_history_store().entries, limit, currency_symbol=symbol)
    summary = comparison_summary(series)

    log_manager.record(
        component="Insights",
        action="comparison",
        level="info",
        result="success",
        title="Comparison chart requested",
        user_summary=f"Compared the last {len(series)} calculations.",
        technical_details=f"insights.comparison_series limit={limit} points={len(series)}.",
    )

    return jsonify(
        {
            "success": True,
            "points": [
                {
                    "label": point.label,
                    "total_working_minutes": point.total_working_minutes,
                    "work_hours": point.work_hours,
                    "hourly_rate": round(point.hourly_rate, 2),
                    "monthly_income": point.monthly_income,
                    "date": format_datetime_for_display(point.created_at),
                }
                for point in series
            ],
            "summary": None
            if summary is None
            else {
                "max_work_hours": summary.max_work_hours,
                "average_hourly_rate": round(summary.average_hourly_rate, 2),
            },
        }
    )


@bp.route("/api/trend")
def api_trend():
    """Hourly rate over time with its direction of change."""

    try:
        limit = _read_limit(TREND_SIZE)
    except ValueError as exc:
        return _json_error(str(exc))

    series = trend_series(get_history_store().entries, limit)
    summary = trend_summary(series)

    log_manager.record(
        component="Insights",
        action="trend",
        level="info",
        result="success",
        title="Trend chart requested",
        user_summary=(
            f"Hourly rate trend is {summary.direction}."
            if summary
            else "At least two calculations are needed to show a trend."
        ),
        technical_details=f"insights.trend_series limit={limit} points={len(series)}.",
    )

    return jsonify(
        {
            "success": True,
            "points": [
                {
                    "index": point.index,
                    "label": point.label,
                    "hourly_rate": round(point.hourly_rate, 2),
                    "date": format_datetime_for_display(point.created_at, "%b %d"),
                    "item_price": point.item_price,
                    "monthly_income": point.monthly_income,
                }
                for point in series
            ],
            "summary": None
            if summary is None
            else {
                "first": round(summary.first, 2),
                "last": round(summary.last, 2),
                "delta_percent": round(summary.delta_percent, 1),
                "max": round(summary.maximum, 2),
                "min": round(summary.minimum, 2),
                "average": round(summary.average, 2),
                "direction": summary.direction,
            },
        }
    )


@bp.route("/api/breakdown")
def api_breakdown():
    """Working against non-working minutes for one entry, newest by default."""

    store = get_history_store()
    entry_id = request.args.get("entry_id")
    entry = store.find(entry_id) if entry_id else store.most_recent()
    if entry is None:
        return _json_error("No calculation is available for a breakdown.", status=404)

    split = time_split(entry.calculation, entry.result)
    log_manager.record(
        component="Insights",
        action="breakdown",
        level="info",
        result="success",
        title="Breakdown chart requested",
        user_summary=(
            f"{split.working_minutes} of {split.elapsed_minutes} minutes are working time."
        ),
        technical_details=f"insights.time_split entry_id={entry.id}.",
    )
    return jsonify(
        {
            "success": True,
            "entry_id": entry.id,
            "working_minutes": split.working_minutes,
            "non_working_minutes": split.non_working_minutes,
            "elapsed_minutes": split.elapsed_minutes,
        }
    )
