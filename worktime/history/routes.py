"""Routes for browsing and clearing the calculation history."""
from __future__ import annotations

from flask import current_app, jsonify, request

from ..logging_service import log_manager
from ..settings.services import format_datetime_for_display
from . import bp
from .services import HistoryEntry, get_history_store


def _json_error(message: str, *, status: int = 400):
    """Return a consistently formatted JSON error response."""

    response = jsonify({"success": False, "message": message})
    response.status_code = status
    return response


def _serialize_entry(entry: HistoryEntry) -> dict[str, object]:
    data = entry.to_dict(current_app.config.get("CURRENCY_SYMBOL", "€"))
    data["created_display"] = format_datetime_for_display(
        entry.created_at, "%b %d, %Y at %H:%M"
    )
    return data


@bp.route("/api/entries", methods=["GET", "DELETE"])
def api_entries():
    """List the history or clear it."""

    store = get_history_store()

    if request.method == "DELETE":
        store.clear_history()
        if store.last_error is not None:
            log_manager.record_error(
                store.last_error,
                component="History",
                action="clear",
                title="Cleared history could not be saved",
                user_summary="History was cleared for this session but the saved copy remains.",
            )
        else:
            log_manager.record(
                component="History",
                action="clear",
                level="info",
                result="success",
                title="History cleared",
                user_summary="All saved calculations were removed.",
                technical_details="history.clear_history persisted an empty log.",
            )
        return jsonify(
            {
                "success": True,
                "entries": [],
                "saved": store.last_error is None,
                "message": "History cleared.",
            }
        )

    return jsonify(
        {
            "success": True,
            "entries": [_serialize_entry(entry) for entry in store.entries],
            "count": len(store.entries),
            "capacity": store.capacity,
        }
    )


@bp.route("/api/entries/<entry_id>")
def api_entry_detail(entry_id: str):
    """Return one entry so its inputs and result can be restored."""

    entry = get_history_store().find(entry_id)
    if entry is None:
        return _json_error("History entry not found.", status=404)

    log_manager.record(
        component="History",
        action="restore",
        level="info",
        result="success",
        title="History entry restored",
        user_summary="A previous calculation was loaded back into the calculator.",
        technical_details=f"history.api_entry_detail served entry {entry_id}.",
    )

    return jsonify({"success": True, "entry": _serialize_entry(entry)})
