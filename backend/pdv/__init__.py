# backend/pdv/__init__.py
from flask import Flask, current_app, g, jsonify, request
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from .config import Config
from .errors import ConstraintViolationError, DomainError
from .extensions import db, migrate


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores FOREIGN KEY clauses unless the pragma is on per connection
    if type(dbapi_connection).__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# Reachable during maintenance without an admin session
MAINTENANCE_EXEMPT_PREFIXES = (
    "/api/system",
    "/api/auth/login",
    "/api/auth/verify",
    "/api/auth/register",
    "/api/employees/login",
)


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.employees import employees_bp
    from .routes.clients import clients_bp
    from .routes.categories import categories_bp
    from .routes.stock import stock_bp
    from .routes.sales import sales_bp
    from .routes.loyalty import loyalty_bp
    from .routes.service_orders import service_orders_bp
    from .routes.billing import payment_methods_bp, suppliers_bp, bills_bp
    from .routes.financial import financial_bp
    from .routes.analytics import analytics_bp
    from .routes.settings import settings_bp
    from .routes.admin import admin_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(employees_bp)
    app.register_blueprint(clients_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(stock_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(loyalty_bp)
    app.register_blueprint(service_orders_bp)
    app.register_blueprint(payment_methods_bp)
    app.register_blueprint(suppliers_bp)
    app.register_blueprint(bills_bp)
    app.register_blueprint(financial_bp)
    app.register_blueprint(analytics_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(admin_bp)

    register_maintenance_gate(app)
    register_error_handlers(app)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin and origin in current_app.config.get("CORS_ORIGINS", ()):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app


def register_maintenance_gate(app: Flask) -> None:
    """
    Answer 503 for API calls while maintenance mode is on.

    Public auth/system endpoints stay reachable, and administrators keep
    full access so they can switch maintenance off again.
    """
    from .decorators import bearer_token
    from .services import session_service, system_service

    @app.before_request
    def check_maintenance_mode():
        path = request.path
        if not path.startswith("/api/") or path.startswith(MAINTENANCE_EXEMPT_PREFIXES):
            return None

        if not system_service.is_maintenance_mode(db.session):
            return None

        token = bearer_token()
        if token:
            context = session_service.validate_session(db.session, token)
            if context and context.principal.is_admin:
                return None

        status = system_service.system_status(db.session)
        return jsonify({
            "error": "System under maintenance",
            "maintenance": True,
            "message": status["message"],
        }), 503


def register_error_handlers(app: Flask) -> None:
    """
    Map service exceptions to JSON responses.

    Every handler rolls the session back first so a failed unit of work
    never leaks into the next request on the same scoped session.
    """
    from .services.tenant_service import CrossTenantAccessError, record_cross_tenant_attempt

    @app.errorhandler(DomainError)
    def handle_domain_error(exc: DomainError):
        db.session.rollback()
        if isinstance(exc, CrossTenantAccessError):
            current_app.logger.warning(
                "Cross-tenant access denied: tenant %s requested %s %s owned by tenant %s",
                exc.tenant_id, exc.model, exc.entity_id, exc.owner_tenant_id,
            )
            record_cross_tenant_attempt(db.session, exc, principal=getattr(g, "principal", None))
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(exc: IntegrityError):
        db.session.rollback()
        current_app.logger.warning("Integrity error: %s", exc.orig)
        error = ConstraintViolationError("Write rejected by a database constraint")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({"error": exc.description}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        db.session.rollback()
        current_app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": "Internal server error"}), 500
