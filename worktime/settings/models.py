"""Database models for global calculator preferences."""
from __future__ import annotations

from datetime import datetime

from ..extensions import db


class AppSettings(db.Model):
    """Persisted preferences shared across the calculator."""

    id: int = db.Column(db.Integer, primary_key=True)
    timezone: str = db.Column(db.String(64), nullable=False, default="UTC")
    default_hours_per_day: float = db.Column(db.Float, nullable=False, default=8.0)
    default_days_per_week: float = db.Column(db.Float, nullable=False, default=5.0)
    created_at: datetime = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at: datetime = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<AppSettings timezone={self.timezone}>"
