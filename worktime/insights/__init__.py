"""History insights blueprint."""
from flask import Blueprint

bp = Blueprint("insights", __name__)

from . import routes  # noqa: E402,F401
