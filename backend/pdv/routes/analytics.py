# Overview: Flask API routes for dashboard analytics; parses input and returns JSON responses.

"""
Analytics routes.

Read-only aggregations over the caller's tenant. The period query parameter
accepts daily, weekly, monthly, or all (the default).
"""

from flask import Blueprint, current_app, g, request

from ..decorators import require_auth
from ..extensions import db
from ..services import reporting_service


analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")


@analytics_bp.get("/sales")
@require_auth
def sales_analytics_route():
    return reporting_service.sales_analytics(db.session, g.tenant_id, request.args.get("period"))


@analytics_bp.get("/stock")
@require_auth
def stock_analytics_route():
    threshold = request.args.get("low_stock_below", type=int)
    if threshold is None:
        threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 5)
    return reporting_service.stock_analytics(db.session, g.tenant_id, low_stock_threshold=threshold)


@analytics_bp.get("/financial")
@require_auth
def financial_analytics_route():
    return reporting_service.financial_analytics(db.session, g.tenant_id, request.args.get("period"))
