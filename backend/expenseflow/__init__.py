# backend/expenseflow/__init__.py
import logging

from flask import Flask

from .config import Config
from .extensions import db, migrate


def _configure_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    logger = logging.getLogger("expenseflow")
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s [%(name)s] %(message)s"
        ))
        logger.addHandler(handler)


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    # Applied before init_app: Flask-SQLAlchemy builds the engine from the URI there
    if config_overrides:
        app.config.update(config_overrides)

    _configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    from .services.expense_engine import build_engine
    app.extensions["expense_engine"] = build_engine(app.config)

    # Register blueprints
    from .routes.expenses import expenses_bp
    app.register_blueprint(expenses_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app


def get_engine(app: Flask | None = None):
    """The lifecycle engine built for the (current) app."""
    if app is None:
        from flask import current_app
        app = current_app
    return app.extensions["expense_engine"]
