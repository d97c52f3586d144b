"""Tests for history endpoints and history hydration at startup."""

from __future__ import annotations

import json

from worktime import create_app
from worktime.extensions import db
from worktime.history.services import (
    CorruptHistoryError,
    DatabaseKeyValueStore,
    get_history_store,
    init_history_store,
)
from worktime.logging_service import log_manager

PAYLOAD = {
    "monthly_income": "4300",
    "item_price": "120",
    "hours_per_day": "8",
    "days_per_week": "5",
}


def test_entries_are_listed_newest_first(client):
    client.post("/api/calculate", json=PAYLOAD)
    client.post("/api/calculate", json=dict(PAYLOAD, item_price="80"))

    data = client.get("/history/api/entries").get_json()

    assert data["count"] == 2
    assert data["capacity"] == 10
    assert [entry["input"]["item_price"] for entry in data["entries"]] == ["80", "120"]
    assert "created_display" in data["entries"][0]


def test_clear_empties_history_and_storage(client, app):
    client.post("/api/calculate", json=PAYLOAD)

    response = client.delete("/history/api/entries")

    assert response.status_code == 200
    assert response.get_json()["entries"] == []
    assert client.get("/history/api/entries").get_json()["count"] == 0
    with app.app_context():
        key = app.config["HISTORY_STORAGE_KEY"]
        assert DatabaseKeyValueStore().get(key) == "[]"


def test_entry_detail_restores_a_previous_calculation(client):
    created = client.post("/api/calculate", json=PAYLOAD).get_json()
    entry_id = created["history"][0]["id"]

    response = client.get(f"/history/api/entries/{entry_id}")

    assert response.status_code == 200
    assert response.get_json()["entry"]["input"] == PAYLOAD


def test_unknown_entry_returns_not_found(client):
    response = client.get("/history/api/entries/missing")

    assert response.status_code == 404
    assert response.get_json()["success"] is False


def test_history_survives_a_restart(client, app):
    client.post("/api/calculate", json=PAYLOAD)

    with app.app_context():
        store = init_history_store(app)

    assert len(store.entries) == 1
    assert store.entries[0].calculation.item_price == "120"


def test_corrupt_storage_starts_empty_and_logs_a_warning(file_config):
    first = create_app(file_config)
    with first.app_context():
        DatabaseKeyValueStore().set(first.config["HISTORY_STORAGE_KEY"], "{not json")
        db.session.remove()

    restarted = create_app(file_config)
    with restarted.app_context():
        store = get_history_store()
        logs = log_manager.fetch_logs(component="History", level="warn")
        db.drop_all()
        db.session.remove()

    assert store.entries == []
    assert isinstance(store.last_error, CorruptHistoryError)
    assert logs and logs[0]["action"] == "load-history"


def test_clean_startup_logs_nothing_for_history(app):
    with app.app_context():
        assert log_manager.fetch_logs(component="History") == []


def test_database_store_removes_keys(app):
    with app.app_context():
        storage = DatabaseKeyValueStore()
        storage.set("scratch", "[]")
        storage.set("scratch", "[1]")
        assert storage.get("scratch") == "[1]"

        storage.remove("scratch")
        storage.remove("scratch")

        assert storage.get("scratch") is None


def test_stored_blob_is_a_json_list(client, app):
    client.post("/api/calculate", json=PAYLOAD)

    with app.app_context():
        raw = DatabaseKeyValueStore().get(app.config["HISTORY_STORAGE_KEY"])

    documents = json.loads(raw)
    assert documents[0]["itemPrice"] == "120"
    assert documents[0]["timestamp"].endswith("Z")
