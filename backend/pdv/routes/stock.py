# Overview: Flask API routes for stock (products); parses input and returns JSON responses.

"""
Stock routes.

MULTI-TENANT: All product operations are scoped to the caller's tenant.
The tenant id is derived from g.tenant_id (set by @require_auth).

Quantities only go down through /api/sales; PUT here is for recounts and
catalogue edits.
"""

from flask import Blueprint, g, request

from ..decorators import require_active_account, require_auth
from ..extensions import db
from ..services import products_service
from ..validation import require_json_object


stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


@stock_bp.get("")
@require_auth
def list_products_route():
    """
    List products with optional filters and pagination.

    Query params:
    - search: matches name, description, or barcode
    - category_id: int
    - low_stock_below: int, keep products with quantity under it
    - page / per_page: pagination (default 20 per page, max 100)
    """
    return products_service.list_products(
        db.session,
        g.tenant_id,
        search=request.args.get("search"),
        category_id=request.args.get("category_id", type=int),
        low_stock_below=request.args.get("low_stock_below", type=int),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@stock_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    return products_service.get_product(db.session, g.tenant_id, product_id).to_dict()


@stock_bp.post("")
@require_auth
@require_active_account
def create_product_route():
    payload = require_json_object(request.get_json(silent=True))
    return products_service.create_product(db.session, g.tenant_id, payload).to_dict(), 201


@stock_bp.put("/<int:product_id>")
@require_auth
@require_active_account
def update_product_route(product_id: int):
    payload = require_json_object(request.get_json(silent=True))
    return products_service.update_product(db.session, g.tenant_id, product_id, payload).to_dict()


@stock_bp.delete("/<int:product_id>")
@require_auth
def delete_product_route(product_id: int):
    products_service.delete_product(db.session, g.tenant_id, product_id)
    return {"ok": True}
