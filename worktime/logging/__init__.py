"""Structured log feed blueprint."""
from flask import Blueprint

bp = Blueprint("logging", __name__)

from . import routes  # noqa: E402,F401
