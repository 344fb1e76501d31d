"""
Community Hub
Configuration classes for the Flask app factory.

Usage:
    config_name = os.getenv("APP_ENV", "development")
    app.config.from_object(config[config_name])
"""

import os
import secrets

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

_SQLITE_DEV = f"sqlite:///{os.path.join(basedir, 'instance', 'hub_dev.db')}"
_SQLITE_TEST = "sqlite:///:memory:"

# Random per-process key for development; production MUST set SECRET_KEY
_DEV_SECRET = secrets.token_hex(32)


def _flag(name, default="true"):
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _db_url(name, default=None):
    raw = os.getenv(name, "")
    # Heroku-style URLs use postgres://, SQLAlchemy 2.0 requires postgresql://
    return raw.replace("postgres://", "postgresql://", 1) if raw else default


def _binds():
    binds = {}
    for key, env in (("timeclock", "TIMECLOCK_DATABASE_URL"), ("staff", "STAFF_DATABASE_URL")):
        url = _db_url(env)
        if url:
            binds[key] = url
    return binds


class Config:
    """Base configuration shared across all environments."""

    SECRET_KEY = os.getenv("SECRET_KEY", _DEV_SECRET)
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
    DEBUG = False
    TESTING = False

    # SQLAlchemy
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}
    SQLALCHEMY_BINDS = _binds()

    # Session cookie shared with the SPA
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    PERMANENT_SESSION_LIFETIME = 24 * 60 * 60

    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000")
    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

    # Discord OAuth2 + bot
    DISCORD_CLIENT_ID = os.getenv("DISCORD_CLIENT_ID")
    DISCORD_CLIENT_SECRET = os.getenv("DISCORD_CLIENT_SECRET")
    DISCORD_REDIRECT_URI = os.getenv("DISCORD_REDIRECT_URI", "http://localhost:5000/auth/discord/callback")
    DISCORD_BOT_TOKEN = os.getenv("DISCORD_BOT_TOKEN")
    DISCORD_GUILD_ID = os.getenv("DISCORD_GUILD_ID")
    DISCORD_ADMIN_ROLE_ID = os.getenv("DISCORD_ADMIN_ROLE_ID")
    MANAGEMENT_ROLE_ID = os.getenv("MANAGEMENT_ROLE_ID")
    DISCORD_WEBHOOK_URL = os.getenv("DISCORD_WEBHOOK_URL")
    DISCORD_APPLICATION_WEBHOOK_URL = os.getenv("DISCORD_APPLICATION_WEBHOOK_URL")

    # External garage lookup API ("key1,key2")
    GARAGE_API_KEYS = os.getenv("GARAGE_API_KEYS", "")

    # Feature flags
    ENABLE_DEPARTMENTS = _flag("ENABLE_DEPARTMENTS")
    ENABLE_ORGANIZATIONS = _flag("ENABLE_ORGANIZATIONS")
    ENABLE_TIMECLOCK = _flag("ENABLE_TIMECLOCK")
    ENABLE_PLAYER_RECORD = _flag("ENABLE_PLAYER_RECORD")


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _db_url("DATABASE_URL", _SQLITE_DEV)


class TestingConfig(Config):
    """Testing environment configuration."""

    TESTING = True
    SECRET_KEY = "test-secret-key"
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", _SQLITE_TEST)
    SQLALCHEMY_ENGINE_OPTIONS = {}
    SQLALCHEMY_BINDS = {"timeclock": _SQLITE_TEST, "staff": _SQLITE_TEST}
    RATELIMIT_ENABLED = False

    FRONTEND_URL = "http://hub.test"
    CORS_ORIGINS = "http://hub.test"
    DISCORD_CLIENT_ID = "client-id"
    DISCORD_CLIENT_SECRET = "client-secret"
    DISCORD_BOT_TOKEN = "bot-token"
    DISCORD_GUILD_ID = "guild-1"
    DISCORD_ADMIN_ROLE_ID = "role-admin"
    MANAGEMENT_ROLE_ID = "role-management"
    DISCORD_WEBHOOK_URL = "https://discord.test/api/webhooks/tickets"
    DISCORD_APPLICATION_WEBHOOK_URL = "https://discord.test/api/webhooks/applications"
    GARAGE_API_KEYS = "test-garage-key"

    ENABLE_DEPARTMENTS = True
    ENABLE_ORGANIZATIONS = True
    ENABLE_TIMECLOCK = True
    ENABLE_PLAYER_RECORD = True


class ProductionConfig(Config):
    """Production environment configuration."""

    SQLALCHEMY_DATABASE_URI = _db_url("DATABASE_URL")
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
        "pool_timeout": 20,
    }
    SESSION_COOKIE_SECURE = True

    def __init__(self):
        if not self.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError("DATABASE_URL environment variable is required in production")
        if not os.getenv("SECRET_KEY"):
            raise RuntimeError("SECRET_KEY environment variable must be set in production")


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
