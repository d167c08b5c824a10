# Overview: Flask API routes for service orders; parses input and returns JSON responses.

"""
Service order routes.

Numbers (OS<year><sequence>) are assigned server-side; status changes stamp
completion and delivery dates.
"""

from flask import Blueprint, g, request

from ..decorators import require_active_account, require_auth
from ..errors import ValidationError
from ..extensions import db
from ..services import service_order_service
from ..validation import require_json_object


service_orders_bp = Blueprint("service_orders", __name__, url_prefix="/api/service-orders")


@service_orders_bp.get("")
@require_auth
def list_orders_route():
    """
    Query params:
    - status, priority: exact match
    - client_id: int
    - search: number, equipment, or serial number
    - page / per_page: pagination
    """
    return service_order_service.list_orders(
        db.session,
        g.tenant_id,
        status=request.args.get("status"),
        priority=request.args.get("priority"),
        client_id=request.args.get("client_id", type=int),
        search=request.args.get("search"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@service_orders_bp.get("/<int:order_id>")
@require_auth
def get_order_route(order_id: int):
    return service_order_service.get_order(db.session, g.tenant_id, order_id).to_dict()


@service_orders_bp.post("")
@require_auth
@require_active_account
def create_order_route():
    payload = require_json_object(request.get_json(silent=True))
    order = service_order_service.create_order(db.session, g.tenant_id, payload)
    return order.to_dict(), 201


@service_orders_bp.put("/<int:order_id>")
@require_auth
@require_active_account
def update_order_route(order_id: int):
    payload = require_json_object(request.get_json(silent=True))
    return service_order_service.update_order(db.session, g.tenant_id, order_id, payload).to_dict()


@service_orders_bp.put("/<int:order_id>/status")
@require_auth
@require_active_account
def change_status_route(order_id: int):
    """Body: {status}."""
    data = require_json_object(request.get_json(silent=True))
    if not data.get("status"):
        raise ValidationError("status is required")
    return service_order_service.change_status(db.session, g.tenant_id, order_id, data["status"]).to_dict()


@service_orders_bp.delete("/<int:order_id>")
@require_auth
def delete_order_route(order_id: int):
    service_order_service.delete_order(db.session, g.tenant_id, order_id)
    return {"ok": True}
