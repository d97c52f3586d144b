"""Database models backing the key-value store."""
from __future__ import annotations

from datetime import datetime

from ..extensions import db


class StoredValue(db.Model):
    """One string value stored under a fixed key."""

    __tablename__ = "stored_value"

    key: str = db.Column(db.String(128), primary_key=True)
    value: str = db.Column(db.Text, nullable=False)
    updated_at: datetime = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<StoredValue {self.key}>"
