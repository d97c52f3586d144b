"""Work time calculator blueprint."""
from flask import Blueprint

bp = Blueprint("calculator", __name__)

from . import routes  # noqa: E402,F401
