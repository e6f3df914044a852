import logging
import os
from typing import Any

from flask import Flask
from sqlalchemy.pool import StaticPool

from .authz import configure_login_manager
from .blueprints_registry import register_blueprints
from .config import ENV_DIAGNOSTICS
from .extensions import csrf, db, limiter, migrate
from .logging_config import configure_logging
from .resilience import register_resilience_handlers

logger = logging.getLogger(__name__)


def create_app(config: dict[str, Any] | None = None) -> Flask:
    app = Flask(__name__)
    os.makedirs(app.instance_path, exist_ok=True)

    _load_base_config(app, config)
    _apply_sqlalchemy_env_overrides(app)
    _configure_sqlite_engine_options(app)

    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)
    _configure_rate_limiter(app)

    configure_login_manager(app)
    register_blueprints(app)
    from . import models  # noqa: F401  # ensure models registered for Alembic

    configure_logging(app)
    register_resilience_handlers(app)

    from .management import register_commands

    register_commands(app)
    _run_optional_create_all(app)

    return app


def _load_base_config(app: Flask, config: dict[str, Any] | None) -> None:
    app.config.from_object("plato.config.Config")
    if config:
        app.config.update(config)
    app.config["ENV_DIAGNOSTICS"] = ENV_DIAGNOSTICS
    for warning in ENV_DIAGNOSTICS.get("warnings", ()):
        logger.warning("Environment configuration warning: %s", warning)

    if app.config.get("TESTING"):
        app.config.setdefault("WTF_CSRF_ENABLED", False)

    if config and "DATABASE_URL" in config:
        app.config["SQLALCHEMY_DATABASE_URI"] = config["DATABASE_URL"]


def _apply_sqlalchemy_env_overrides(app: Flask) -> None:
    engine_opts = dict(app.config.get("SQLALCHEMY_ENGINE_OPTIONS", {}) or {})
    changed = False

    def _apply_int(env_key: str, option_key: str):
        nonlocal changed
        value = os.environ.get(env_key)
        if value in (None, ""):
            return
        try:
            engine_opts[option_key] = int(value)
            changed = True
        except ValueError:
            logger.warning("Invalid integer for %s: %s", env_key, value)

    _apply_int("SQLALCHEMY_POOL_SIZE", "pool_size")
    _apply_int("SQLALCHEMY_MAX_OVERFLOW", "max_overflow")

    if changed:
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = engine_opts


def _configure_sqlite_engine_options(app: Flask) -> None:
    """Configure SQLite engine options for testing/memory databases"""
    uri = app.config.get("SQLALCHEMY_DATABASE_URI") or ""
    if app.config.get("TESTING") or uri.startswith("sqlite"):
        opts = dict(app.config.get("SQLALCHEMY_ENGINE_OPTIONS", {}))
        # SQLite pools do not accept these
        opts.pop("pool_size", None)
        opts.pop("max_overflow", None)
        opts.pop("pool_recycle", None)
        if uri == "sqlite:///:memory:":
            opts["poolclass"] = StaticPool
            opts["connect_args"] = {"check_same_thread": False}
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = opts


def _configure_rate_limiter(app: Flask) -> None:
    storage_uri = app.config.get("RATELIMIT_STORAGE_URI") or "memory://"
    app.config["RATELIMIT_STORAGE_URI"] = storage_uri
    limiter.init_app(app)

    if app.config.get("ENV") == "production" and storage_uri.startswith("memory://"):
        logger.warning("Rate limiter is using in-memory storage; limits are per worker process.")


def _run_optional_create_all(app: Flask) -> None:
    value = (os.environ.get("SQLALCHEMY_CREATE_ALL") or "").strip().lower()
    if value not in {"1", "true", "yes", "on"}:
        logger.info("db.create_all() not enabled; Alembic migrations are the source of truth")
        return

    logger.info("Local dev: creating tables via db.create_all() (SQLALCHEMY_CREATE_ALL)")
    with app.app_context():
        db.create_all()
