"""Application factory for the work time calculator."""
from __future__ import annotations

from flask import Flask

from .config import Config
from .extensions import db

# Blueprint packages import each other's services; this order resolves them.
from .settings import bp as settings_bp
from .logging_service import log_manager
from .calculator import bp as calculator_bp
from .history import bp as history_bp
from .history.services import init_history_store
from .insights import bp as insights_bp
from .logging import bp as logging_bp


def create_app(config_class: type[Config] = Config) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_class)

    db.init_app(app)
    log_manager.init_app(app)

    with app.app_context():
        db.create_all()
        history = init_history_store(app)
        if history.last_error is not None:
            log_manager.record_error(
                history.last_error,
                component="History",
                action="load-history",
                level="warn",
                title="History could not be fully restored",
                user_summary="Saved calculations were unreadable and have been discarded.",
            )

    app.register_blueprint(calculator_bp)
    app.register_blueprint(history_bp, url_prefix="/history")
    app.register_blueprint(insights_bp, url_prefix="/insights")
    app.register_blueprint(settings_bp, url_prefix="/settings")
    app.register_blueprint(logging_bp, url_prefix="/logs")

    for component in ("Calculator", "History", "Insights", "Settings", "Logging"):
        log_manager.register_component(component)

    return app
