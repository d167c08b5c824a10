# Overview: Service-layer operations for employees; encapsulates business logic and database work.

"""
Employee Management Service

MULTI-TENANT: Employees are created under the acting owner's tenant and can
only be read or changed by that tenant.

SECURITY: Changing an employee's password or deactivating them revokes all
of their open sessions.
"""

from __future__ import annotations

from ..errors import ConstraintViolationError, ValidationError
from ..models import Employee
from ..models.tenancy import EMPLOYEE_ROLES
from ..validation import ModelValidationPolicy, apply_patch, validate_payload
from .auth_service import email_in_use, hash_password
from .principals import EMPLOYEE
from .session_service import revoke_principal_sessions
from .tenant_service import get_owned_or_404, scoped_query


EMPLOYEE_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "name", "email", "phone", "tax_id", "role", "permissions",
        "salary_cents", "hired_on", "is_active",
    }),
    required_on_create=frozenset({"name", "email"}),
    choices={"role": EMPLOYEE_ROLES},
    non_negative=frozenset({"salary_cents"}),
)


def _check_permissions(patch: dict) -> None:
    permissions = patch.get("permissions")
    if permissions is None:
        return
    if not isinstance(permissions, list) or not all(isinstance(p, str) for p in permissions):
        raise ValidationError("permissions must be a list of strings")


def _normalize_email(session, patch: dict, current: Employee | None = None) -> None:
    if "email" not in patch:
        return
    email = patch["email"].lower()
    if "@" not in email:
        raise ValidationError("email must be a valid address")
    if (current is None or current.email != email) and email_in_use(session, email):
        raise ConstraintViolationError("Email already registered")
    patch["email"] = email


def list_employees(session, tenant_id: int, *, include_inactive: bool = True) -> list[Employee]:
    query = scoped_query(session, Employee, tenant_id)
    if not include_inactive:
        query = query.filter(Employee.is_active.is_(True))
    return query.order_by(Employee.name.asc()).all()


def get_employee(session, tenant_id: int, employee_id: int) -> Employee:
    return get_owned_or_404(session, Employee, employee_id, tenant_id)


def create_employee(session, tenant_id: int, payload: dict) -> Employee:
    payload = dict(payload or {})
    password = payload.pop("password", None)

    patch = validate_payload(model=Employee, payload=payload, policy=EMPLOYEE_POLICY, partial=False)
    _check_permissions(patch)
    _normalize_email(session, patch)

    employee = Employee(tenant_id=tenant_id, role="seller", permissions=[], is_active=True)
    apply_patch(employee, patch)
    if password:
        employee.password_hash = hash_password(password)

    session.add(employee)
    session.commit()
    return employee


def update_employee(session, tenant_id: int, employee_id: int, payload: dict) -> Employee:
    patch = validate_payload(model=Employee, payload=payload, policy=EMPLOYEE_POLICY, partial=True)
    if not patch:
        raise ValidationError("No fields to update")
    _check_permissions(patch)

    employee = get_owned_or_404(session, Employee, employee_id, tenant_id)
    _normalize_email(session, patch, current=employee)

    deactivating = patch.get("is_active") is False and employee.is_active
    apply_patch(employee, patch)
    session.commit()

    if deactivating:
        revoke_principal_sessions(session, EMPLOYEE, employee.id, "Employee deactivated")
    return employee


def set_employee_password(session, tenant_id: int, employee_id: int, password: str) -> Employee:
    employee = get_owned_or_404(session, Employee, employee_id, tenant_id)
    employee.password_hash = hash_password(password)
    session.commit()
    revoke_principal_sessions(session, EMPLOYEE, employee.id, "Password changed")
    return employee


def delete_employee(session, tenant_id: int, employee_id: int) -> None:
    """
    Soft-delete: the employee is deactivated, not removed.

    Sales and service orders keep pointing at the row.
    """
    employee = get_owned_or_404(session, Employee, employee_id, tenant_id)
    employee.is_active = False
    session.commit()
    revoke_principal_sessions(session, EMPLOYEE, employee.id, "Employee removed")
