# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/pdv/routes/sales.py
"""
Sales routes.

MULTI-TENANT: The sale, its client, and every product line are resolved in
the caller's tenant. A product or client id from another tenant answers
404, exactly like a missing one.

Sales are immutable once recorded: there is no update or delete route.
"""

from flask import Blueprint, g, request

from ..decorators import require_active_account, require_auth
from ..extensions import db
from ..services import sales_service
from ..services.principals import EmployeePrincipal
from ..validation import parse_datetime_arg, require_json_object


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_auth
@require_active_account
def create_sale_route():
    """
    Record a sale atomically.

    Body:
    - line_items: [{product_id, quantity, unit_price_cents?}] (required)
    - client_id, total_cents, discount_cents, payment_method_id, notes (optional)

    Employees are recorded as the seller automatically.

    Returns 201 with the sale; 404 for unknown client/product, 400 with
    {product_id, product_name, requested, available} for insufficient stock.
    """
    data = require_json_object(request.get_json(silent=True))

    employee_id = data.get("employee_id")
    if isinstance(g.principal, EmployeePrincipal):
        employee_id = g.principal.id

    sale = sales_service.record_sale(
        db.session,
        tenant_id=g.tenant_id,
        line_items=data.get("line_items"),
        client_id=data.get("client_id"),
        total_cents=data.get("total_cents"),
        discount_cents=data.get("discount_cents"),
        employee_id=employee_id,
        payment_method_id=data.get("payment_method_id"),
        notes=data.get("notes"),
    )
    return {"message": "Sale recorded", "sale_id": sale.id, "sale": sale.to_dict()}, 201


@sales_bp.get("")
@require_auth
def list_sales_route():
    """
    List sales, newest first.

    Query params:
    - client_id: int
    - start / end: ISO-8601 bounds on created_at
    - page / per_page: pagination
    """
    return sales_service.list_sales(
        db.session,
        g.tenant_id,
        client_id=request.args.get("client_id", type=int),
        start=parse_datetime_arg(request.args.get("start"), "start"),
        end=parse_datetime_arg(request.args.get("end"), "end"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    return sales_service.get_sale(db.session, g.tenant_id, sale_id).to_dict()
