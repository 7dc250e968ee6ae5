"""
ProjectHub
Flask Application Factory.

Usage:
    from projecthub import create_app
    app = create_app()           # defaults to APP_ENV or "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event

from projecthub.blueprints import register_error_handlers
from projecthub.config import config
from projecthub.middleware.current_user import init_current_user
from projecthub.middleware.logging_config import configure_logging
from projecthub.middleware.rate_limiter import init_rate_limits
from projecthub.middleware.timing import init_request_timing
from projecthub.models import db

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
limiter = Limiter(key_func=get_remote_address, default_limits=[])  # per-blueprint limits only


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
    app.config.from_object(config[config_name]())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request middleware ───────────────────────────────────────────────
    init_request_timing(app)
    init_current_user(app)

    # ── Import all models so Alembic can detect them ─────────────────────
    from projecthub.models import user as _user_models                  # noqa: F401
    from projecthub.models import team as _team_models                  # noqa: F401
    from projecthub.models import project as _project_models            # noqa: F401
    from projecthub.models import change_request as _cr_models          # noqa: F401
    from projecthub.models import risk as _risk_models                  # noqa: F401
    from projecthub.models import reimbursement as _reimbursement_models  # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    with app.app_context():
        if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite:///") and not app.config.get("TESTING"):
            os.makedirs(app.instance_path, exist_ok=True)
        try:
            db.create_all()
            app.logger.info("db.create_all() completed successfully")
        except Exception as e:
            app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from projecthub.blueprints.change_requests_bp import change_requests_bp
    from projecthub.blueprints.projects_bp import projects_bp
    from projecthub.blueprints.reimbursement_bp import reimbursement_bp
    from projecthub.blueprints.risks_bp import risks_bp
    from projecthub.blueprints.teams_bp import teams_bp
    from projecthub.blueprints.users_bp import users_bp
    from projecthub.blueprints.work_packages_bp import work_packages_bp

    app.register_blueprint(users_bp)
    app.register_blueprint(teams_bp)
    app.register_blueprint(projects_bp)
    app.register_blueprint(work_packages_bp)
    app.register_blueprint(change_requests_bp)
    app.register_blueprint(risks_bp)
    app.register_blueprint(reimbursement_bp)

    # ── Health check ─────────────────────────────────────────────────────
    @app.route("/api/v1/health")
    def health():
        return {"status": "ok", "app": "ProjectHub"}

    register_error_handlers(app)

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
