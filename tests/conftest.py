from __future__ import annotations

from pathlib import Path
import sys

import pytest
from sqlalchemy.pool import StaticPool

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from worktime import create_app
from worktime.config import Config
from worktime.extensions import db
from worktime.history.services import PersistenceReadError, PersistenceWriteError


class TestingConfig(Config):
    """Configuration tuned for isolated unit tests."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {
        "connect_args": {"check_same_thread": False},
        "poolclass": StaticPool,
    }


class MemoryStore:
    """Dictionary-backed key-value store that can be told to reject reads or writes."""

    def __init__(
        self,
        initial: dict[str, str] | None = None,
        *,
        fail_reads: bool = False,
        fail_writes: bool = False,
    ):
        self.data = dict(initial or {})
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes
        self.writes = 0

    def get(self, key: str) -> str | None:
        if self.fail_reads:
            raise PersistenceReadError("storage is unavailable")
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise PersistenceWriteError("storage quota exceeded")
        self.data[key] = value
        self.writes += 1

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


@pytest.fixture()
def app():
    """Create a Flask app instance backed by an in-memory database."""

    application = create_app(TestingConfig)
    yield application
    with application.app_context():
        db.drop_all()
        db.session.remove()


@pytest.fixture()
def client(app):
    """Provide a Flask test client for request assertions."""

    return app.test_client()


@pytest.fixture()
def memory_store():
    return MemoryStore()


@pytest.fixture()
def file_config(tmp_path):
    """Return a config whose database outlives a single app instance."""

    class FileBackedConfig(TestingConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'worktime.db'}"
        SQLALCHEMY_ENGINE_OPTIONS: dict = {}

    return FileBackedConfig
