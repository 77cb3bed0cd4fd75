"""
Flask application factory for the Resume Analyzer service.
Loads configuration, binds the database and migrations, enables CORS for the
frontend and registers the ``/api`` blueprint.
"""

import os
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, List, Optional

from flask import Flask
from flask_cors import CORS
from dotenv import load_dotenv

# Re-export db for scripts that import from resume_analyzer.app
from resume_analyzer.extensions import db, migrate

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _resolve_database_uri() -> str:
    """Pick the database from ``DATABASE_MODE``.

    ``sqlite`` (default) reads ``DATABASE_DEV``; ``postgres`` requires
    ``DATABASE_PROD``.
    """
    mode = (os.getenv("DATABASE_MODE") or "sqlite").lower()
    if mode != "postgres":
        return os.getenv("DATABASE_DEV") or "sqlite:///resume_analyzer.db"
    uri = os.getenv("DATABASE_PROD")
    if not uri:
        raise RuntimeError("DATABASE_PROD must be set when DATABASE_MODE=postgres")
    return uri


def _default_config() -> Dict[str, Any]:
    """Environment-derived defaults; explicit overrides passed to create_app win."""
    return {
        "SQLALCHEMY_TRACK_MODIFICATIONS": False,
        "JSON_SORT_KEYS": False,
        "SECRET_KEY": os.getenv("SECRET_KEY", "dev-secret-key"),
        "JWT_SECRET": os.getenv("JWT_SECRET"),
        "S3_BUCKET_NAME": os.getenv("S3_BUCKET_NAME"),
        "AWS_REGION": os.getenv("AWS_REGION"),
        # Upper bound for multipart bodies; the per-file resume cap is lower
        "MAX_CONTENT_LENGTH": 50 * 1024 * 1024,
        "EXPOSE_ERROR_DETAILS": os.getenv("EXPOSE_ERROR_DETAILS", "0") == "1",
    }


def _allowed_origins() -> List[str]:
    origins = [
        os.getenv("FRONTEND_URL") or "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
    ]
    extra = os.getenv("CORS_EXTRA_ORIGINS", "")
    origins.extend(o.strip() for o in extra.split(",") if o.strip())
    return origins


def _configure_logging(app: Flask) -> None:
    """INFO to stderr and to a rotating file; leaves existing root handlers alone."""
    root = logging.getLogger()
    if not root.handlers:
        stream = logging.StreamHandler()
        stream.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(stream)

        log_path = os.getenv("RESUME_ANALYZER_LOG", "resume_analyzer.log")
        try:
            rotating = RotatingFileHandler(log_path, maxBytes=5 * 1024 * 1024, backupCount=2)
        except OSError:
            app.logger.warning("Could not open log file %s; logging to stderr only", log_path)
        else:
            rotating.setFormatter(logging.Formatter(LOG_FORMAT))
            root.addHandler(rotating)

    root.setLevel(logging.INFO)
    app.logger.setLevel(logging.INFO)


def create_app(config: Optional[Dict[str, Any]] = None) -> Flask:
    """Build the application.

    ``config`` is applied on top of the defaults before extensions are bound,
    which is how tests swap in an in-memory database.
    """
    load_dotenv()

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_mapping(_default_config())
    if config:
        app.config.update(config)
    if not app.config.get("SQLALCHEMY_DATABASE_URI"):
        app.config["SQLALCHEMY_DATABASE_URI"] = _resolve_database_uri()

    # SQLite files default to the instance folder
    Path(app.instance_path).mkdir(parents=True, exist_ok=True)

    db.init_app(app)
    migrate.init_app(app, db)
    CORS(
        app,
        resources={r"/api/*": {"origins": _allowed_origins()}},
        supports_credentials=True,
    )

    from resume_analyzer.blueprints.api import api_bp

    app.register_blueprint(api_bp)
    _configure_logging(app)
    return app
