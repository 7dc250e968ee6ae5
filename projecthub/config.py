"""
ProjectHub
Configuration classes for the Flask app factory.

Usage:
    config_name = os.getenv("APP_ENV", "development")
    app.config.from_object(config[config_name])
"""

import os
import secrets

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

_SQLITE_DEV = f"sqlite:///{os.path.join(basedir, 'instance', 'projecthub_dev.db')}"
_SQLITE_TEST = "sqlite:///:memory:"

_DEV_SECRET = secrets.token_hex(32)


def _env_bool(name, default="false"):
    return os.getenv(name, default).lower() == "true"


def _database_url():
    # Heroku-style URLs use postgres:// which SQLAlchemy 2.0 rejects
    raw = os.getenv("DATABASE_URL", "")
    return raw.replace("postgres://", "postgresql://", 1) if raw else None


class Config:
    """Base configuration shared across all environments."""

    SECRET_KEY = os.getenv("SECRET_KEY", _DEV_SECRET)
    DEBUG = False
    TESTING = False
    LOG_LEVEL = os.getenv("LOG_LEVEL")

    # SQLAlchemy
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }

    # CORS
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # Rate limiting (Flask-Limiter)
    RATELIMIT_ENABLED = _env_bool("RATELIMIT_ENABLED", "true")
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_WRITE = os.getenv("RATELIMIT_WRITE", "60/minute")
    RATELIMIT_READ = os.getenv("RATELIMIT_READ", "200/minute")

    # Requests slower than this are logged at WARNING
    SLOW_REQUEST_MS = int(os.getenv("SLOW_REQUEST_MS", "1000"))

    # Finance permissions are granted to this team's head, leads and members
    FINANCE_TEAM_NAME = os.getenv("FINANCE_TEAM_NAME", "Finance")

    # Slack-style messaging (log-only when SLACK_API_URL is unset)
    NOTIFICATIONS_ENABLED = _env_bool("NOTIFICATIONS_ENABLED", "true")
    SLACK_API_URL = os.getenv("SLACK_API_URL")
    SLACK_BOT_TOKEN = os.getenv("SLACK_BOT_TOKEN")
    LEAD_CHANNEL_SLACK_ID = os.getenv("LEAD_CHANNEL_SLACK_ID")

    # Email / SMTP for the finance advisor (log-only when MAIL_SERVER is unset)
    ADVISOR_EMAIL = os.getenv("ADVISOR_EMAIL")
    MAIL_SERVER = os.getenv("MAIL_SERVER")
    MAIL_PORT = int(os.getenv("MAIL_PORT", "587"))
    MAIL_USE_TLS = _env_bool("MAIL_USE_TLS", "true")
    MAIL_USERNAME = os.getenv("MAIL_USERNAME")
    MAIL_PASSWORD = os.getenv("MAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = os.getenv("MAIL_DEFAULT_SENDER", "noreply@projecthub.local")

    # Receipt storage service
    DOCUMENT_STORE_URL = os.getenv("DOCUMENT_STORE_URL")
    DOCUMENT_STORE_TOKEN = os.getenv("DOCUMENT_STORE_TOKEN")
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024  # receipts up to 10 MB


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_url() or _SQLITE_DEV


class TestingConfig(Config):
    """Testing environment configuration."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", _SQLITE_TEST)
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RATELIMIT_ENABLED = False
    NOTIFICATIONS_ENABLED = False
    SLACK_API_URL = None
    MAIL_SERVER = None
    DOCUMENT_STORE_URL = None


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG = False
    SQLALCHEMY_DATABASE_URI = _database_url()
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")  # Must be set explicitly in production

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
