# Overview: Request authentication and role decorators for API routes.

from functools import wraps

from flask import current_app, g, jsonify, request

from .errors import ForbiddenError
from .extensions import db
from .services import auth_service, session_service
from .services.principals import OwnerPrincipal


def _is_authenticated() -> bool:
    return hasattr(g, "principal") and hasattr(g, "tenant_id")


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def require_auth(f):
    """
    Require authentication and establish tenant context.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.principal: OwnerPrincipal or EmployeePrincipal
    - g.tenant_id: the owner id every query is scoped to - REQUIRED
    - g.current_account: the Owner or Employee row behind the token
    - g.owner: the tenant's Owner row (same as current_account for owners)
    - g.session_context: the full SessionContext object

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired, idle, or revoked token
    - Employee deactivated or tenant removed
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if token is None:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(db.session, token)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.principal = context.principal
        g.tenant_id = context.tenant_id
        g.current_account = context.account
        g.owner = context.owner
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_owner(f):
    """Only the tenant's owner may proceed; employees get 403."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Authentication required"}), 401
        if not isinstance(g.principal, OwnerPrincipal):
            current_app.logger.warning(
                "Employee %s denied owner-only %s %s", g.principal.id, request.method, request.path
            )
            raise ForbiddenError("Only the account owner can perform this action")
        return f(*args, **kwargs)
    return decorated_function


def require_admin(f):
    """Require a platform administrator (an owner account flagged is_admin)."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Authentication required"}), 401
        if not g.principal.is_admin:
            current_app.logger.warning(
                "%s %s denied admin-only %s %s",
                g.principal.kind, g.principal.id, request.method, request.path,
            )
            raise ForbiddenError("Administrator access required")
        return f(*args, **kwargs)
    return decorated_function


def require_active_account(f):
    """
    Block writes for tenants whose trial lapsed or whose payment is pending/cancelled.

    Applies to owners and employees alike; the check is on the tenant.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Authentication required"}), 401
        auth_service.ensure_account_active(db.session, g.owner)
        return f(*args, **kwargs)
    return decorated_function
