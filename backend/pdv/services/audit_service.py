# Overview: Best-effort activity logging for security and admin events.

"""
Activity Log Service

WHY: Security events (cross-tenant lookups, failed logins) and admin actions
must leave a trace, but the trace is secondary. A logging failure is
reported through the app logger and the caller carries on.

Callers log only once their own unit of work is finished (committed or
rolled back), so the log commit never publishes half-done business writes.
"""

from __future__ import annotations

from flask import current_app, has_request_context, request
from sqlalchemy.exc import SQLAlchemyError

from ..models import ActivityLog, Employee, Owner
from .principals import EMPLOYEE, OWNER


CROSS_TENANT_ACCESS_DENIED = "CROSS_TENANT_ACCESS_DENIED"
LOGIN_FAILED = "LOGIN_FAILED"
LOGIN_SUCCEEDED = "LOGIN_SUCCEEDED"


def log_activity(
    session,
    action: str,
    *,
    tenant_id: int | None = None,
    principal=None,
    resource: str | None = None,
    details: dict | None = None,
) -> ActivityLog | None:
    ip_address = None
    if has_request_context():
        ip_address = request.remote_addr
        if resource is None:
            resource = f"{request.method} {request.path}"

    entry = ActivityLog(
        tenant_id=tenant_id,
        principal_kind=getattr(principal, "kind", None),
        principal_id=getattr(principal, "id", None),
        action=action,
        resource=resource,
        details=details,
        ip_address=ip_address,
    )

    try:
        session.add(entry)
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        current_app.logger.warning("Failed to write activity log entry %s", action, exc_info=True)
        return None
    return entry


def list_activity(session, *, action: str | None = None, tenant_id: int | None = None,
                  limit: int = 100, offset: int = 0) -> list[ActivityLog]:
    query = session.query(ActivityLog)
    if action:
        query = query.filter(ActivityLog.action == action)
    if tenant_id is not None:
        query = query.filter(ActivityLog.tenant_id == tenant_id)
    return (
        query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )


def recent_logins(session, *, limit: int = 20) -> list[dict]:
    """Latest successful logins with the name and email of the account behind each."""
    entries = list_activity(session, action=LOGIN_SUCCEEDED, limit=limit)

    owner_ids = {e.principal_id for e in entries if e.principal_kind == OWNER}
    employee_ids = {e.principal_id for e in entries if e.principal_kind == EMPLOYEE}
    accounts = {}
    if owner_ids:
        for owner in session.query(Owner).filter(Owner.id.in_(owner_ids)):
            accounts[(OWNER, owner.id)] = owner
    if employee_ids:
        for employee in session.query(Employee).filter(Employee.id.in_(employee_ids)):
            accounts[(EMPLOYEE, employee.id)] = employee

    rows = []
    for entry in entries:
        account = accounts.get((entry.principal_kind, entry.principal_id))
        row = entry.to_dict()
        row["account_name"] = account.name if account else None
        row["account_email"] = account.email if account else None
        rows.append(row)
    return rows
