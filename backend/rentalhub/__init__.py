# backend/rentalhub/__init__.py
from flask import Flask, jsonify, g, current_app

from .config import Config
from .extensions import db, migrate
from .middleware import handle_unauthorized
from .services import audit_service
from .services.authorization_service import AuthorizationEngine, UnauthorizedError, ENGINE_EXTENSION_KEY
from .services.reservation_service import ReservationService
from .services.session_service import STATE_EXPIRED, STATE_COMPROMISED
from .permissions import DEFAULT_MATRIX


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Authorization core: immutable matrix, denials written to the audit trail
    app.extensions[ENGINE_EXTENSION_KEY] = AuthorizationEngine(DEFAULT_MATRIX, audit=audit_service)
    app.extensions["rentalhub.reservations"] = ReservationService(audit=audit_service)

    # Register blueprints
    from .routes.auth import auth_bp
    from .routes.accounts import accounts_bp
    from .routes.inventory import inventory_bp
    from .routes.admin import admin_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(accounts_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(admin_bp)

    @app.errorhandler(UnauthorizedError)
    def unauthorized_handler(error: UnauthorizedError):
        return jsonify(handle_unauthorized(error)), error.code

    @app.after_request
    def clear_dead_session_cookie(response):
        # Expired or compromised sessions were revoked during this request
        check = g.get("session_check")
        if check is not None and check.state in (STATE_EXPIRED, STATE_COMPROMISED):
            response.delete_cookie(current_app.config["RENTAL_SESSION_COOKIE"])
        return response

    @app.get("/health")
    def health():
        return jsonify({"status": "ok"}), 200

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
