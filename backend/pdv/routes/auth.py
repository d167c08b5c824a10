# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/pdv/routes/auth.py
"""
Owner authentication API routes

SECURITY FEATURES:
- Password strength validation on registration
- Session management with hashed bearer tokens
- Failed and successful logins recorded in the activity log

MULTI-TENANT: Registering creates a new tenant on a free trial. Employees
log in through /api/employees/login and get a session bound to their
employer's tenant.
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import bearer_token, require_auth
from ..extensions import db
from ..services import audit_service, auth_service, session_service, system_service
from ..services.principals import OwnerPrincipal
from ..validation import require_json_object


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    """
    Register a new owner account (a new tenant).

    The trial length comes from the admin-editable system settings.
    """
    data = require_json_object(request.get_json(silent=True))

    owner = auth_service.register_owner(
        db.session,
        name=data.get("name"),
        email=data.get("email"),
        password=data.get("password"),
        phone=data.get("phone"),
        address=data.get("address"),
        trial_days=system_service.trial_period_days(db.session),
    )

    audit_service.log_activity(
        db.session,
        "REGISTER",
        tenant_id=owner.id,
        principal=OwnerPrincipal(id=owner.id),
        details={"email": owner.email},
    )

    return jsonify({
        "message": "Registration successful",
        "user": owner.to_dict(),
        "trial": auth_service.trial_status(owner),
    }), 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate an owner and create a session token.

    Token must be included in Authorization header for protected routes.
    """
    data = require_json_object(request.get_json(silent=True))
    email = data.get("email")
    password = data.get("password")

    if not email or not password:
        return jsonify({"error": "email and password required"}), 400

    owner = auth_service.authenticate_owner(db.session, email, password)
    if not owner:
        audit_service.log_activity(db.session, audit_service.LOGIN_FAILED, details={"email": email})
        return jsonify({"error": "Invalid credentials"}), 401

    record, token = session_service.create_session(
        db.session,
        owner,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    audit_service.log_activity(
        db.session,
        audit_service.LOGIN_SUCCEEDED,
        tenant_id=owner.id,
        principal=OwnerPrincipal(id=owner.id, is_admin=owner.is_admin),
    )

    return jsonify({
        "message": "Login successful",
        "token": token,
        "session": record.to_dict(),
        "user": owner.to_dict(),
        "tenant_id": owner.id,
    }), 200


@auth_bp.post("/logout")
def logout_route():
    """
    Revoke session token (logout).

    Expects Authorization header: Bearer <token>
    """
    token = bearer_token()
    if token is None:
        return jsonify({"error": "Authorization header required"}), 401

    if not session_service.revoke_session(db.session, token, reason="User logout"):
        return jsonify({"error": "Invalid or expired token"}), 401

    return jsonify({"message": "Logout successful"}), 200


@auth_bp.get("/verify")
@require_auth
def verify_route():
    """Return the account behind the token and its tenant context."""
    account = g.current_account.to_dict()
    account["kind"] = g.principal.kind
    return jsonify({
        "valid": True,
        "user": account,
        "tenant_id": g.tenant_id,
        "is_admin": g.principal.is_admin,
    })


@auth_bp.get("/trial-status")
@require_auth
def trial_status_route():
    """Subscription state of the caller's tenant."""
    status = auth_service.trial_status(g.owner)
    status["is_paid"] = g.owner.payment_status == "paid"
    status["is_blocked"] = g.owner.payment_status in auth_service.BLOCKED_PAYMENT_STATUSES
    return jsonify(status)
