# backend/pdv/routes/system.py
"""
System health, status, and notification endpoints.

The read endpoints are public: the frontend polls
them to show the maintenance banner and announcements before anyone has
logged in. Dismissing a notification needs a session.
"""

import time

from flask import Blueprint, current_app, g
from sqlalchemy.exc import SQLAlchemyError

from ..decorators import bearer_token, require_auth
from ..extensions import db
from ..models import Owner, SessionToken
from ..services import notification_service, session_service, system_service
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api/system")


def check_database_health() -> dict:
    """
    Check database connectivity with a couple of cheap counts.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        owner_count = db.session.query(Owner).count()
        active_sessions = db.session.query(SessionToken).filter_by(is_revoked=False).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "owners": owner_count,
                "active_sessions": active_sessions,
            },
        }
    except SQLAlchemyError:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: database reachable
    - 503: database unhealthy
    """
    database_health = check_database_health()
    http_status = 200 if database_health["status"] == "healthy" else 503

    return {
        "status": database_health["status"],
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": database_health},
    }, http_status


@system_bp.get("/status")
def status():
    """Maintenance flag and announcement banner."""
    return system_service.system_status(db.session)


@system_bp.get("/notifications")
def notifications():
    """
    Active platform notifications, newest first.

    Public. With a valid bearer token, notifications that account dismissed
    are left out.
    """
    principal = None
    token = bearer_token()
    if token:
        context = session_service.validate_session(db.session, token)
        if context:
            principal = context.principal

    items = notification_service.list_active(db.session, principal)
    return {"items": [n.to_dict() for n in items], "count": len(items)}


@system_bp.post("/notifications/<int:notification_id>/dismiss")
@require_auth
def dismiss_notification(notification_id: int):
    dismissed = notification_service.dismiss(db.session, notification_id, g.principal)
    return {"success": True, "dismissed": dismissed}
