# Overview: Flask API routes for employee accounts; parses input and returns JSON responses.

"""
Employee routes.

MULTI-TENANT: Employees are managed by their owner only. Employee login is
public and yields a session bound to the employer's tenant.

SECURITY: Every management route requires @require_owner; employees cannot
create, edit, or re-password each other.
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import require_active_account, require_auth, require_owner
from ..errors import ValidationError
from ..extensions import db
from ..services import audit_service, auth_service, employee_service, session_service
from ..services.principals import EmployeePrincipal
from ..validation import require_json_object


employees_bp = Blueprint("employees", __name__, url_prefix="/api/employees")


@employees_bp.post("/login")
def employee_login_route():
    """
    Authenticate an employee and create a session token.

    Returns 403 when the employer's account is blocked.
    """
    data = require_json_object(request.get_json(silent=True))
    email = data.get("email")
    password = data.get("password")

    if not email or not password:
        return jsonify({"error": "email and password required"}), 400

    employee = auth_service.authenticate_employee(db.session, email, password)
    if not employee:
        audit_service.log_activity(
            db.session, audit_service.LOGIN_FAILED, details={"email": email, "kind": "employee"}
        )
        return jsonify({"error": "Invalid credentials"}), 401

    record, token = session_service.create_session(
        db.session,
        employee,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    audit_service.log_activity(
        db.session,
        audit_service.LOGIN_SUCCEEDED,
        tenant_id=employee.tenant_id,
        principal=EmployeePrincipal(id=employee.id, tenant_id=employee.tenant_id, role=employee.role),
    )

    user = employee.to_dict()
    user["company_name"] = employee.owner.name
    return jsonify({
        "message": "Login successful",
        "token": token,
        "session": record.to_dict(),
        "user": user,
        "tenant_id": employee.tenant_id,
    }), 200


@employees_bp.get("")
@require_auth
@require_owner
def list_employees_route():
    include_inactive = request.args.get("include_inactive", "true").lower() != "false"
    employees = employee_service.list_employees(db.session, g.tenant_id, include_inactive=include_inactive)
    return {"items": [e.to_dict() for e in employees], "count": len(employees)}


@employees_bp.get("/<int:employee_id>")
@require_auth
@require_owner
def get_employee_route(employee_id: int):
    return employee_service.get_employee(db.session, g.tenant_id, employee_id).to_dict()


@employees_bp.post("")
@require_auth
@require_owner
@require_active_account
def create_employee_route():
    payload = require_json_object(request.get_json(silent=True))
    employee = employee_service.create_employee(db.session, g.tenant_id, payload)
    return employee.to_dict(), 201


@employees_bp.put("/<int:employee_id>")
@require_auth
@require_owner
@require_active_account
def update_employee_route(employee_id: int):
    payload = require_json_object(request.get_json(silent=True))
    employee = employee_service.update_employee(db.session, g.tenant_id, employee_id, payload)
    return employee.to_dict()


@employees_bp.put("/<int:employee_id>/password")
@require_auth
@require_owner
def set_employee_password_route(employee_id: int):
    """Set or reset an employee's password; open sessions are revoked."""
    payload = require_json_object(request.get_json(silent=True))
    password = payload.get("password")
    if not password:
        raise ValidationError("password is required")
    employee_service.set_employee_password(db.session, g.tenant_id, employee_id, password)
    return {"message": "Password updated"}


@employees_bp.delete("/<int:employee_id>")
@require_auth
@require_owner
def delete_employee_route(employee_id: int):
    employee_service.delete_employee(db.session, g.tenant_id, employee_id)
    return {"ok": True}
