"""HTTP routes for managing global calculator preferences."""
from __future__ import annotations

from flask import jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..logging_service import log_manager
from . import bp
from .services import get_app_settings, serialize_preferences, update_preferences


def _json_error(message: str, *, status: int = 400):
    """Return a consistently formatted JSON error response."""

    response = jsonify({"success": False, "message": message})
    response.status_code = status
    return response


def _optional_number(payload: dict[str, object], field: str, label: str) -> float | None:
    raw = payload.get(field)
    if raw in (None, ""):
        return None
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{label} must be a number.") from exc


@bp.route("/api/preferences", methods=["GET", "PATCH"])
def api_preferences():
    """Expose or update global preferences."""

    if request.method == "GET":
        return jsonify(
            {
                "success": True,
                "preferences": serialize_preferences(get_app_settings()),
            }
        )

    payload = request.get_json(silent=True) or {}

    try:
        hours_per_day = _optional_number(payload, "default_hours_per_day", "Hours per day")
        days_per_week = _optional_number(payload, "default_days_per_week", "Days per week")
        settings = update_preferences(
            timezone_name=payload.get("timezone") or None,
            hours_per_day=hours_per_day,
            days_per_week=days_per_week,
        )
    except ValueError as exc:
        return _json_error(str(exc))
    except SQLAlchemyError as exc:
        db.session.rollback()
        log_manager.record_error(
            exc,
            component="Settings",
            action="update-preferences",
            title="Preferences update failed",
            user_summary="The system could not save the new preferences. Try again shortly.",
        )
        return _json_error(
            "We were unable to update the preferences. Try again shortly.", status=500
        )

    preferences = serialize_preferences(settings)
    log_manager.record(
        component="Settings",
        action="update-preferences",
        level="info",
        result="success",
        title="Preferences updated",
        user_summary=f"Preferences saved with timezone {settings.timezone}.",
        technical_details=(
            "settings.update_preferences persisted"
            f" timezone={settings.timezone}"
            f" hours_per_day={settings.default_hours_per_day}"
            f" days_per_week={settings.default_days_per_week}"
        ),
    )

    return jsonify(
        {
            "success": True,
            "preferences": preferences,
            "message": "Preferences saved.",
        }
    )
