# Overview: Flask API routes for product categories.

from flask import Blueprint, g, request

from ..decorators import require_active_account, require_auth
from ..extensions import db
from ..services import category_service
from ..validation import require_json_object


categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
@require_auth
def list_categories_route():
    items = category_service.list_categories(db.session, g.tenant_id)
    return {"items": items, "count": len(items)}


@categories_bp.get("/<int:category_id>")
@require_auth
def get_category_route(category_id: int):
    return category_service.get_category(db.session, g.tenant_id, category_id)


@categories_bp.post("")
@require_auth
@require_active_account
def create_category_route():
    payload = require_json_object(request.get_json(silent=True))
    return category_service.create_category(db.session, g.tenant_id, payload).to_dict(), 201


@categories_bp.put("/<int:category_id>")
@require_auth
@require_active_account
def update_category_route(category_id: int):
    payload = require_json_object(request.get_json(silent=True))
    return category_service.update_category(db.session, g.tenant_id, category_id, payload).to_dict()


@categories_bp.delete("/<int:category_id>")
@require_auth
def delete_category_route(category_id: int):
    category_service.delete_category(db.session, g.tenant_id, category_id)
    return {"ok": True}
