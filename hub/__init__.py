"""
Community Hub
Flask Application Factory.

Usage:
    from hub import create_app
    app = create_app()           # defaults to APP_ENV, then "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event
from sqlalchemy.exc import SQLAlchemyError

from hub.auth import init_auth
from hub.config import config
from hub.core.exceptions import HubError
from hub.middleware.logging_config import configure_logging
from hub.middleware.rate_limiter import init_rate_limits
from hub.middleware.security_headers import init_security_headers
from hub.middleware.timing import init_request_timing
from hub.models import db
from hub.utils.errors import E, api_error

logger = logging.getLogger(__name__)


# ── SQLite FK enforcement (global engine event) ─────────────────────────
@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # per-blueprint limits only
    storage_uri=os.getenv("RATELIMIT_STORAGE_URI", "memory://"),
)


def seed_defaults():
    """Default ticket category, garage config and vehicle statuses. Idempotent."""
    from hub.services import garage_service, ticket_service

    ticket_service.ensure_default_category()
    garage_service.ensure_defaults()
    db.session.commit()


def _register_error_handlers(app):
    @app.errorhandler(HubError)
    def _hub_error(exc):
        db.session.rollback()
        if exc.status_code >= 500:
            logger.error("%s on %s: %s", type(exc).__name__, request.path, exc.message)
        else:
            logger.info("%s on %s: %s", type(exc).__name__, request.path, exc.message)
        return api_error(exc.code, exc.message, status=exc.status_code, details=exc.details or None)

    @app.errorhandler(404)
    def _not_found(e):
        return api_error(E.NOT_FOUND, "Not found", details={"path": request.path})

    @app.errorhandler(405)
    def _method_not_allowed(e):
        return api_error(E.VALIDATION_INVALID, "Method not allowed", status=405)

    @app.errorhandler(429)
    def _rate_limited(e):
        return api_error(E.VALIDATION_INVALID, "Too many requests", status=429,
                         details={"retry_after": e.description})

    @app.errorhandler(500)
    def _server_error(e):
        db.session.rollback()
        logger.error("500 error on %s: %s", request.path, e, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: One of "development", "testing", "production".
                     Defaults to the APP_ENV env var, or "development".

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    # Instantiate so ProductionConfig can refuse to start without its env vars
    app.config.from_object(config[config_name]())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = [o.strip() for o in (app.config.get("CORS_ORIGINS") or "").split(",") if o.strip()]
    CORS(app, origins=cors_origins or [app.config["FRONTEND_URL"]], supports_credentials=True)

    # ── Authentication, security headers, request timing ─────────────────
    init_auth(app)
    init_security_headers(app)
    init_request_timing(app)
    app.config.setdefault("MAX_CONTENT_LENGTH", 2 * 1024 * 1024)  # 2 MB

    # ── Import all models so Alembic can detect them ─────────────────────
    from hub.models import application as _application_models  # noqa: F401
    from hub.models import department as _department_models    # noqa: F401
    from hub.models import garage as _garage_models            # noqa: F401
    from hub.models import settings as _settings_models        # noqa: F401
    from hub.models import staff as _staff_models              # noqa: F401
    from hub.models import ticket as _ticket_models            # noqa: F401
    from hub.models import timeclock as _timeclock_models      # noqa: F401
    from hub.models import user as _user_models                # noqa: F401

    # ── Hub tables + defaults (the timeclock bind is external, never created here) ──
    with app.app_context():
        try:
            db.create_all(bind_key=None)
            seed_defaults()
            app.logger.info("Database ready (tables created, defaults seeded)")
        except SQLAlchemyError as e:
            db.session.rollback()
            app.logger.warning("Database bootstrap failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from hub.blueprints.admin_bp import admin_bp
    from hub.blueprints.application_bp import application_bp
    from hub.blueprints.auth_bp import auth_bp
    from hub.blueprints.department_bp import department_bp
    from hub.blueprints.garage_bp import garage_api_bp, garage_bp
    from hub.blueprints.health_bp import health_bp
    from hub.blueprints.ticket_bp import ticket_bp
    from hub.blueprints.timeclock_bp import timeclock_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(ticket_bp)
    app.register_blueprint(application_bp)
    app.register_blueprint(department_bp)
    app.register_blueprint(timeclock_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(garage_bp)
    app.register_blueprint(garage_api_bp)
    app.register_blueprint(health_bp)

    _register_error_handlers(app)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("seed-defaults")
    def seed_defaults_cmd():
        """Seed the default ticket category, garage config and vehicle statuses."""
        seed_defaults()
        logger.info("Defaults seeded.")

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
