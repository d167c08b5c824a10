# Overview: Flask API routes for platform administration.

"""
Admin routes.

SECURITY: Every route requires @require_admin. These are the only endpoints
that read across tenants; each change is written to the activity log.
"""

from flask import Blueprint, g, request

from ..decorators import require_admin, require_auth
from ..errors import ValidationError
from ..extensions import db
from ..services import audit_service, notification_service, reporting_service, system_service
from ..validation import parse_date_arg, require_json_object


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/system-stats")
@require_auth
@require_admin
def system_stats_route():
    return reporting_service.system_stats(db.session)


@admin_bp.get("/settings")
@require_auth
@require_admin
def get_settings_route():
    return system_service.get_settings(db.session)


@admin_bp.put("/settings")
@require_auth
@require_admin
def update_settings_route():
    """Body: any of {maintenance_mode, system_announcement, trial_period_days}."""
    payload = require_json_object(request.get_json(silent=True))
    settings = system_service.update_settings(db.session, payload)
    audit_service.log_activity(
        db.session, "SYSTEM_SETTINGS_UPDATED", principal=g.principal, details={"fields": sorted(payload)}
    )
    return settings


@admin_bp.get("/activity-logs")
@require_auth
@require_admin
def activity_logs_route():
    """
    Query params:
    - action: exact match (e.g. CROSS_TENANT_ACCESS_DENIED)
    - tenant_id: int
    - limit (default 100, max 500) / offset
    """
    limit = min(request.args.get("limit", 100, type=int), 500)
    offset = max(request.args.get("offset", 0, type=int), 0)
    entries = audit_service.list_activity(
        db.session,
        action=request.args.get("action"),
        tenant_id=request.args.get("tenant_id", type=int),
        limit=limit,
        offset=offset,
    )
    return {"items": [e.to_dict() for e in entries], "count": len(entries)}


@admin_bp.get("/owners")
@require_auth
@require_admin
def list_owners_route():
    owners = system_service.list_owners(db.session, payment_status=request.args.get("payment_status"))
    return {"items": [o.to_dict() for o in owners], "count": len(owners)}


@admin_bp.get("/owners/<int:owner_id>")
@require_auth
@require_admin
def get_owner_route(owner_id: int):
    return system_service.get_owner(db.session, owner_id).to_dict()


@admin_bp.put("/owners/bulk-status")
@require_auth
@require_admin
def bulk_status_route():
    """Body: {owner_ids: [int], payment_status: trial|pending|paid|cancelled}."""
    data = require_json_object(request.get_json(silent=True))
    if "owner_ids" not in data or "payment_status" not in data:
        raise ValidationError("owner_ids and payment_status are required")

    updated = system_service.set_payment_status(db.session, data["owner_ids"], data["payment_status"])
    audit_service.log_activity(
        db.session,
        "ACCOUNT_STATUS_UPDATED",
        principal=g.principal,
        details={"owner_ids": data["owner_ids"], "payment_status": data["payment_status"]},
    )
    return {"ok": True, "updated": updated}


@admin_bp.get("/recent-logins")
@require_auth
@require_admin
def recent_logins_route():
    """Query params: limit (default 20, max 200)."""
    limit = min(max(request.args.get("limit", 20, type=int), 1), 200)
    items = audit_service.recent_logins(db.session, limit=limit)
    return {"items": items, "count": len(items)}


@admin_bp.get("/recent-registrations")
@require_auth
@require_admin
def recent_registrations_route():
    """Query params: start_date / end_date (YYYY-MM-DD, inclusive), limit (default 20, max 200)."""
    limit = min(max(request.args.get("limit", 20, type=int), 1), 200)
    owners = system_service.recent_registrations(
        db.session,
        start=parse_date_arg(request.args.get("start_date"), "start_date"),
        end=parse_date_arg(request.args.get("end_date"), "end_date"),
        limit=limit,
    )
    return {"items": [o.to_dict() for o in owners], "count": len(owners)}


@admin_bp.post("/notifications/broadcast")
@require_auth
@require_admin
def broadcast_notification_route():
    """Body: {title, message, kind?: info|warning|success|error}."""
    data = require_json_object(request.get_json(silent=True))
    notification = notification_service.broadcast(
        db.session,
        title=data.get("title"),
        message=data.get("message"),
        kind=data.get("kind", "info"),
        created_by=g.principal.id,
    )
    audit_service.log_activity(
        db.session,
        "NOTIFICATION_BROADCAST",
        principal=g.principal,
        details={"notification_id": notification.id, "title": notification.title},
    )
    return notification.to_dict(), 201


@admin_bp.get("/notifications")
@require_auth
@require_admin
def list_active_notifications_route():
    notifications = notification_service.list_active(db.session)
    return {"items": [n.to_dict() for n in notifications], "count": len(notifications)}


@admin_bp.get("/notifications/all")
@require_auth
@require_admin
def list_all_notifications_route():
    notifications = notification_service.list_all(db.session)
    return {"items": [n.to_dict() for n in notifications], "count": len(notifications)}


@admin_bp.delete("/notifications/<int:notification_id>")
@require_auth
@require_admin
def delete_notification_route(notification_id: int):
    notification_service.delete(db.session, notification_id)
    audit_service.log_activity(
        db.session,
        "NOTIFICATION_DELETED",
        principal=g.principal,
        details={"notification_id": notification_id},
    )
    return {"ok": True}
