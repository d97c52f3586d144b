"""Routes that turn prices into work time."""
from __future__ import annotations

from flask import current_app, jsonify, request

from ..history.services import get_history_store
from ..logging_service import log_manager
from ..settings.services import get_app_settings
from . import bp
from .services import CalculationInput, InvalidInputError, compute_result


def _json_error(message: str, *, status: int = 400, **extra: object):
    """Return a consistently formatted JSON error response."""

    response = jsonify({"success": False, "message": message, **extra})
    response.status_code = status
    return response


def _format_number(value: float) -> str:
    return f"{value:g}"


@bp.route("/api/state")
def api_state():
    """Return the inputs and result the form should open with."""

    symbol = current_app.config.get("CURRENCY_SYMBOL", "€")
    store = get_history_store()
    latest = store.most_recent()

    if latest is not None:
        state = {
            "input": latest.calculation.to_dict(),
            "result": latest.result.to_dict(symbol),
            "source": "history",
            "entry_id": latest.id,
        }
    else:
        settings = get_app_settings()
        state = {
            "input": {
                "monthly_income": "",
                "item_price": "",
                "hours_per_day": _format_number(settings.default_hours_per_day),
                "days_per_week": _format_number(settings.default_days_per_week),
            },
            "result": None,
            "source": "defaults",
            "entry_id": None,
        }

    log_manager.record(
        component="Calculator",
        action="load-state",
        level="info",
        result="success",
        title="Calculator opened",
        user_summary=(
            "Restored the last calculation."
            if latest is not None
            else "Started a new calculation with the default schedule."
        ),
        technical_details=f"calculator.api_state served source={state['source']}.",
    )

    return jsonify({"success": True, **state, "history_size": len(store.entries)})


@bp.route("/api/calculate", methods=["POST"])
def api_calculate():
    """Compute the work time for an item and record it in the history."""

    payload = request.get_json(silent=True) or {}
    symbol = current_app.config.get("CURRENCY_SYMBOL", "€")

    calculation = CalculationInput.from_values(
        monthly_income=payload.get("monthly_income"),
        item_price=payload.get("item_price"),
        hours_per_day=payload.get("hours_per_day"),
        days_per_week=payload.get("days_per_week"),
    )

    try:
        result = compute_result(calculation)
    except InvalidInputError as exc:
        return _json_error(str(exc), field=exc.field)

    if not result.is_defined:
        log_manager.record(
            component="Calculator",
            action="calculate",
            level="warn",
            result="rejected",
            title="Hourly rate undefined",
            user_summary="The schedule does not contain any working hours.",
            technical_details=(
                "calculator.compute_result returned an undefined rate for"
                f" {calculation.to_dict()}."
            ),
        )
        return _json_error(
            "The schedule does not contain any working hours, so no hourly rate exists.",
            status=422,
        )

    store = get_history_store()
    entries, recorded = store.record_calculation(calculation, result)

    if store.last_error is not None:
        log_manager.record_error(
            store.last_error,
            component="History",
            action="persist-history",
            title="History could not be saved",
            user_summary="The calculation is kept for this session but was not saved.",
        )

    log_manager.record(
        component="Calculator",
        action="calculate",
        level="info",
        result="success",
        title="Work time calculated",
        user_summary=(
            f"{symbol}{calculation.item_price} costs"
            f" {result.working_time.display} of work at"
            f" {result.to_dict(symbol)['hourly_rate_display']} per hour."
        ),
        technical_details=(
            f"calculator.compute_result hourly_rate={result.hourly_rate:.6f}"
            f" recorded={recorded} history_size={len(entries)}."
        ),
    )

    return jsonify(
        {
            "success": True,
            "input": calculation.to_dict(),
            "result": result.to_dict(symbol),
            "recorded": recorded,
            "saved": store.last_error is None,
            "history": [entry.to_dict(symbol) for entry in entries],
        }
    )
