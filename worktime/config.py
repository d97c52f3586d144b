"""Configuration settings for the work time calculator."""
from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


class Config:
    """Base configuration class."""

    SECRET_KEY = os.environ.get("WORKTIME_SECRET_KEY", "worktime-dev-key")
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "WORKTIME_DATABASE_URI", f"sqlite:///{BASE_DIR / 'worktime.db'}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    ENVIRONMENT = os.environ.get("WORKTIME_ENV", "development")
    LOG_RETENTION = int(os.environ.get("WORKTIME_LOG_RETENTION", 200))
    HISTORY_STORAGE_KEY = os.environ.get(
        "WORKTIME_HISTORY_KEY", "work-time-calculator-history"
    )
    HISTORY_CAPACITY = int(os.environ.get("WORKTIME_HISTORY_CAPACITY", 10))
    CURRENCY_SYMBOL = os.environ.get("WORKTIME_CURRENCY_SYMBOL", "€")
