from __future__ import annotations

import logging
import os
from typing import Any, Mapping

import click
from flask import Flask
from flask.logging import default_handler

from .extensions import db, login_manager, migrate, csrf
from .services.notifications import build_transport
from .views.auth import auth_bp
from .views.groups import groups_bp


def create_app(test_config: Mapping[str, Any] | None = None) -> Flask:
    app = Flask(__name__)

    app.config["SECRET_KEY"] = os.environ.get("SECRET_KEY", "dev-secret-change-me")
    app.config["SQLALCHEMY_DATABASE_URI"] = os.environ.get("DATABASE_URL", "sqlite:///santamatch.db")
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False

    # Optional explicit Fernet key for recipients; otherwise derived from SECRET_KEY
    app.config["ASSIGNMENT_ENC_KEY"] = os.environ.get("ASSIGNMENT_ENC_KEY", "").strip()

    # Links in notification mails point at <APP_BASE_URL>/groups/<id>
    app.config["APP_BASE_URL"] = os.environ.get("APP_BASE_URL", "http://localhost:9002")
    app.config["SENDGRID_API_KEY"] = os.environ.get("SENDGRID_API_KEY", "")
    app.config["MAIL_FROM_ADDRESS"] = os.environ.get("MAIL_FROM_ADDRESS", "")
    app.config["NOTIFY_MAX_WORKERS"] = int(os.environ.get("NOTIFY_MAX_WORKERS", "8"))
    app.config["NOTIFICATION_TRANSPORT"] = None

    app.config["LOG_LEVEL"] = os.environ.get("LOG_LEVEL", "INFO").upper()

    if test_config:
        app.config.update(test_config)

    logger = logging.getLogger(__name__)
    logger.setLevel(app.config["LOG_LEVEL"])
    if default_handler not in logger.handlers:
        logger.addHandler(default_handler)

    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)

    app.extensions["santamatch.transport"] = build_transport(app.config)

    # Blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(groups_bp)

    @app.cli.command("init-db")
    def init_db():
        """Create all tables (use `flask db upgrade` once migrations exist)."""
        db.create_all()
        click.echo("Initialized the database.")

    return app
