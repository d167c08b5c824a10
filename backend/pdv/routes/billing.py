# Overview: Flask API routes for payment methods, suppliers, and bills payable.

"""
Billing routes.

MULTI-TENANT: Payment methods, suppliers, and bills are tenant-owned; a bill
may only reference a supplier or payment method of the same tenant.
"""

from flask import Blueprint, g, request

from ..decorators import require_active_account, require_auth
from ..extensions import db
from ..services import billing_service
from ..validation import parse_date_arg, require_json_object


payment_methods_bp = Blueprint("payment_methods", __name__, url_prefix="/api/payment-methods")
suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")
bills_bp = Blueprint("bills", __name__, url_prefix="/api/bills")


def _active_only() -> bool:
    return request.args.get("active_only", "false").lower() == "true"


# -- payment methods ---------------------------------------------------------

@payment_methods_bp.get("")
@require_auth
def list_payment_methods_route():
    methods = billing_service.list_payment_methods(db.session, g.tenant_id, active_only=_active_only())
    return {"items": [m.to_dict() for m in methods], "count": len(methods)}


@payment_methods_bp.post("")
@require_auth
@require_active_account
def create_payment_method_route():
    payload = require_json_object(request.get_json(silent=True))
    return billing_service.create_payment_method(db.session, g.tenant_id, payload).to_dict(), 201


@payment_methods_bp.put("/<int:method_id>")
@require_auth
@require_active_account
def update_payment_method_route(method_id: int):
    payload = require_json_object(request.get_json(silent=True))
    return billing_service.update_payment_method(db.session, g.tenant_id, method_id, payload).to_dict()


@payment_methods_bp.delete("/<int:method_id>")
@require_auth
def delete_payment_method_route(method_id: int):
    """Delete a payment method; one already in use is deactivated instead."""
    deleted = billing_service.delete_payment_method(db.session, g.tenant_id, method_id)
    return {"ok": True, "deleted": deleted, "deactivated": not deleted}


# -- suppliers ---------------------------------------------------------------

@suppliers_bp.get("")
@require_auth
def list_suppliers_route():
    suppliers = billing_service.list_suppliers(db.session, g.tenant_id, active_only=_active_only())
    return {"items": [s.to_dict() for s in suppliers], "count": len(suppliers)}


@suppliers_bp.get("/<int:supplier_id>")
@require_auth
def get_supplier_route(supplier_id: int):
    return billing_service.get_supplier(db.session, g.tenant_id, supplier_id).to_dict()


@suppliers_bp.post("")
@require_auth
@require_active_account
def create_supplier_route():
    payload = require_json_object(request.get_json(silent=True))
    return billing_service.create_supplier(db.session, g.tenant_id, payload).to_dict(), 201


@suppliers_bp.put("/<int:supplier_id>")
@require_auth
@require_active_account
def update_supplier_route(supplier_id: int):
    payload = require_json_object(request.get_json(silent=True))
    return billing_service.update_supplier(db.session, g.tenant_id, supplier_id, payload).to_dict()


@suppliers_bp.delete("/<int:supplier_id>")
@require_auth
def delete_supplier_route(supplier_id: int):
    billing_service.delete_supplier(db.session, g.tenant_id, supplier_id)
    return {"ok": True}


# -- bills -------------------------------------------------------------------

@bills_bp.get("")
@require_auth
def list_bills_route():
    """
    Query params:
    - status: pending | paid | overdue | cancelled
    - due_from / due_to: YYYY-MM-DD bounds on due_date
    """
    bills = billing_service.list_bills(
        db.session,
        g.tenant_id,
        status=request.args.get("status"),
        due_from=parse_date_arg(request.args.get("due_from"), "due_from"),
        due_to=parse_date_arg(request.args.get("due_to"), "due_to"),
    )
    return {"items": [b.to_dict() for b in bills], "count": len(bills)}


@bills_bp.get("/summary")
@require_auth
def bills_summary_route():
    return billing_service.bills_summary(db.session, g.tenant_id)


@bills_bp.post("")
@require_auth
@require_active_account
def create_bill_route():
    payload = require_json_object(request.get_json(silent=True))
    return billing_service.create_bill(db.session, g.tenant_id, payload).to_dict(), 201


@bills_bp.put("/<int:bill_id>")
@require_auth
@require_active_account
def update_bill_route(bill_id: int):
    payload = require_json_object(request.get_json(silent=True))
    return billing_service.update_bill(db.session, g.tenant_id, bill_id, payload).to_dict()


@bills_bp.put("/<int:bill_id>/pay")
@require_auth
@require_active_account
def pay_bill_route(bill_id: int):
    """Body (optional): {paid_on: YYYY-MM-DD}, defaults to today."""
    data = require_json_object(request.get_json(silent=True))
    paid_on = parse_date_arg(data.get("paid_on"), "paid_on") if isinstance(data.get("paid_on"), str) else None
    return billing_service.pay_bill(db.session, g.tenant_id, bill_id, paid_on=paid_on).to_dict()


@bills_bp.delete("/<int:bill_id>")
@require_auth
def delete_bill_route(bill_id: int):
    billing_service.delete_bill(db.session, g.tenant_id, bill_id)
    return {"ok": True}
