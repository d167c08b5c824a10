# Overview: Flask API routes for financial transactions and the financial report.

from flask import Blueprint, g, request

from ..decorators import require_active_account, require_auth
from ..extensions import db
from ..services import billing_service, reporting_service
from ..validation import parse_datetime_arg, require_json_object


financial_bp = Blueprint("financial", __name__, url_prefix="/api/financial")


@financial_bp.post("/transactions")
@require_auth
@require_active_account
def create_transaction_route():
    """Body: {amount_cents, description?, status? (pending|paid), paid_at?}."""
    payload = require_json_object(request.get_json(silent=True))
    return billing_service.record_payment(db.session, g.tenant_id, payload).to_dict(), 201


@financial_bp.get("/transactions")
@require_auth
def list_transactions_route():
    return billing_service.list_payments(
        db.session,
        g.tenant_id,
        start=parse_datetime_arg(request.args.get("start"), "start"),
        end=parse_datetime_arg(request.args.get("end"), "end"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@financial_bp.get("/reports")
@require_auth
def financial_report_route():
    """Query params: period = daily | weekly | monthly | all (default)."""
    return reporting_service.financial_report(db.session, g.tenant_id, request.args.get("period"))
