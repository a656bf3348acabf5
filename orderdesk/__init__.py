"""
orderdesk/__init__.py

Flask application factory for the purchase-order desk.

Requirements:
- JSON API only; clients are never trusted, all permission checks are server-side.
- PostgreSQL-ready (SQLAlchemy + migrations) but SQLite is used for dev.
- Business rules live in orderdesk.core (no Flask imports there).
"""

from __future__ import annotations

import logging

import click
from flask import Flask, jsonify
from flask_login import current_user

from .core.errors import OrderDeskError
from .extensions import db, login_manager, migrate
from .models import User
from .security import unauthorized

logger = logging.getLogger(__name__)


def _configure_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    package_logger = logging.getLogger("orderdesk")
    package_logger.setLevel(level)
    if not package_logger.handlers and not logging.getLogger().handlers:
        logging.basicConfig(format="%(asctime)s %(levelname)s [%(name)s] %(message)s")


def create_app(config_object: str | object = "config.Config") -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)
    _configure_logging(app)

    # Extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id: str) -> User | None:
        """Load user for Flask-Login."""
        try:
            return db.session.get(User, int(user_id))
        except (TypeError, ValueError):
            return None

    @login_manager.unauthorized_handler
    def _unauthorized():
        return unauthorized()

    # ----------------------------------------------------------------------
    # Errors: domain failures -> JSON, transaction rolled back
    # ----------------------------------------------------------------------
    @app.errorhandler(OrderDeskError)
    def _domain_error(exc: OrderDeskError):
        db.session.rollback()
        user = current_user.username if current_user.is_authenticated else "anonymous"
        logger.warning("rejected (%s) for %s: %s", exc.code, user, exc)
        return jsonify({"success": False, "error": exc.to_dict()}), exc.http_status

    @app.errorhandler(404)
    def _not_found(_exc):
        return jsonify({"success": False, "error": {"code": "not_found", "message": "Resource not found."}}), 404

    @app.errorhandler(405)
    def _method_not_allowed(_exc):
        return (
            jsonify({"success": False, "error": {"code": "method_not_allowed", "message": "Method not allowed."}}),
            405,
        )

    # ----------------------------------------------------------------------
    # Blueprints
    # ----------------------------------------------------------------------
    from .blueprints.auth import auth_bp
    from .blueprints.dashboard import dashboard_bp
    from .blueprints.invoices import invoices_bp
    from .blueprints.orders import orders_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(invoices_bp)
    app.register_blueprint(dashboard_bp)

    # ----------------------------------------------------------------------
    # CLI
    # ----------------------------------------------------------------------
    @app.cli.command("seed-demo")
    def seed_demo_command():
        """Seed demo users, a project and a few purchase orders."""
        from .seed import seed_demo_data

        seed_demo_data()
        click.echo("Demo data seeded.")

    # ----------------------------------------------------------------------
    # Home
    # ----------------------------------------------------------------------
    @app.route("/api/")
    def index():
        return jsonify({"success": True, "data": {"name": app.config["APP_NAME"]}})

    return app
