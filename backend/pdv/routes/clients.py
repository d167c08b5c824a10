# Overview: Flask API routes for clients; parses input and returns JSON responses.

"""
Client routes.

MULTI-TENANT: Every client is read and written through the caller's
g.tenant_id; ids from another tenant answer 404.
"""

from flask import Blueprint, g, request

from ..decorators import require_active_account, require_auth
from ..extensions import db
from ..services import client_service
from ..validation import require_json_object


clients_bp = Blueprint("clients", __name__, url_prefix="/api/clients")


@clients_bp.get("")
@require_auth
def list_clients_route():
    """
    List clients, optionally filtered and paginated.

    Query params:
    - search: matches name, email, phone, or tax id
    - page / per_page: pagination (all rows when page is omitted)
    """
    return client_service.list_clients(
        db.session,
        g.tenant_id,
        search=request.args.get("search"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@clients_bp.get("/<int:client_id>")
@require_auth
def get_client_route(client_id: int):
    return client_service.get_client(db.session, g.tenant_id, client_id).to_dict()


@clients_bp.get("/<int:client_id>/stats")
@require_auth
def client_stats_route(client_id: int):
    return client_service.client_stats(db.session, g.tenant_id, client_id)


@clients_bp.post("")
@require_auth
@require_active_account
def create_client_route():
    payload = require_json_object(request.get_json(silent=True))
    return client_service.create_client(db.session, g.tenant_id, payload).to_dict(), 201


@clients_bp.put("/<int:client_id>")
@require_auth
@require_active_account
def update_client_route(client_id: int):
    payload = require_json_object(request.get_json(silent=True))
    return client_service.update_client(db.session, g.tenant_id, client_id, payload).to_dict()


@clients_bp.delete("/<int:client_id>")
@require_auth
def delete_client_route(client_id: int):
    client_service.delete_client(db.session, g.tenant_id, client_id)
    return {"ok": True}
