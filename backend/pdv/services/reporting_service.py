# Overview: Read-only aggregation queries for analytics, financial reports, and admin statistics.

"""
Reporting Service

WHY: Dashboards need sales, stock, and cash summaries. Everything here is a
read-only SUM/COUNT/GROUP BY over tenant-scoped tables, with the exception
of system_stats which is platform-wide and admin-only.

Periods:
- daily:   today (UTC), grouped by hour
- weekly:  last 7 days, grouped by date
- monthly: last 30 days, grouped by date
- all:     everything, grouped by month
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta

from sqlalchemy import case, func

from ..errors import ValidationError
from ..models import Owner, Payment, Product, Sale
from ..time_utils import utcnow


PERIODS = ("daily", "weekly", "monthly", "all")
TOP_PRODUCTS_LIMIT = 10


class ReportError(ValidationError):
    """Raised for invalid report parameters."""


def _period_window(period: str | None, now: datetime | None = None) -> tuple[str, datetime | None]:
    period = period or "all"
    if period not in PERIODS:
        raise ReportError(f"period must be one of: {', '.join(PERIODS)}")

    now = now or utcnow()
    if period == "daily":
        return period, now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "weekly":
        return period, now - timedelta(days=7)
    if period == "monthly":
        return period, now - timedelta(days=30)
    return period, None


def _bucket_expr(period: str, column):
    if period == "daily":
        return func.strftime("%H", column)
    if period in ("weekly", "monthly"):
        return func.strftime("%Y-%m-%d", column)
    return func.strftime("%Y-%m", column)


def sales_analytics(session, tenant_id: int, period: str | None = None, now: datetime | None = None) -> dict:
    """Sales count and revenue per bucket, overall summary, and best sellers."""
    period, start = _period_window(period, now)

    filters = [Sale.tenant_id == tenant_id]
    if start is not None:
        filters.append(Sale.created_at >= start)

    bucket = _bucket_expr(period, Sale.created_at).label("bucket")
    rows = (
        session.query(
            bucket,
            func.count(Sale.id).label("sales_count"),
            func.coalesce(func.sum(Sale.total_cents), 0).label("total_cents"),
        )
        .filter(*filters)
        .group_by(bucket)
        .order_by(bucket)
        .all()
    )

    count, total, average = (
        session.query(
            func.count(Sale.id),
            func.coalesce(func.sum(Sale.total_cents), 0),
            func.coalesce(func.avg(Sale.total_cents), 0),
        )
        .filter(*filters)
        .one()
    )

    # Line items are a JSON snapshot, so best sellers are tallied in Python
    units: dict[int, int] = defaultdict(int)
    revenue: dict[int, int] = defaultdict(int)
    names: dict[int, str] = {}
    for (line_items,) in session.query(Sale.line_items).filter(*filters).all():
        for item in line_items or []:
            product_id = item["product_id"]
            units[product_id] += item["quantity"]
            revenue[product_id] += item["quantity"] * item["unit_price_cents"]
            names.setdefault(product_id, item.get("product_name"))

    top = sorted(units, key=lambda pid: (-revenue[pid], -units[pid], pid))[:TOP_PRODUCTS_LIMIT]

    return {
        "period": period,
        "by_period": [
            {"period": r.bucket, "sales_count": int(r.sales_count), "total_cents": int(r.total_cents)}
            for r in rows
        ],
        "summary": {
            "sales_count": int(count),
            "revenue_cents": int(total),
            "average_ticket_cents": int(round(float(average))),
        },
        "top_products": [
            {
                "product_id": pid,
                "product_name": names.get(pid),
                "units_sold": units[pid],
                "revenue_cents": revenue[pid],
            }
            for pid in top
        ],
    }


def stock_analytics(session, tenant_id: int, low_stock_threshold: int = 5) -> dict:
    """Per-product stock value, low-stock list, and totals."""
    products = (
        session.query(Product)
        .filter(Product.tenant_id == tenant_id)
        .order_by(Product.quantity.desc(), Product.name.asc())
        .all()
    )

    product_count, total_units, stock_value = (
        session.query(
            func.count(Product.id),
            func.coalesce(func.sum(Product.quantity), 0),
            func.coalesce(func.sum(Product.quantity * Product.unit_cost_cents), 0),
        )
        .filter(Product.tenant_id == tenant_id)
        .one()
    )

    return {
        "products": [
            {
                "id": p.id,
                "name": p.name,
                "quantity": p.quantity,
                "unit_cost_cents": p.unit_cost_cents,
                "stock_value_cents": p.quantity * p.unit_cost_cents,
            }
            for p in products
        ],
        "low_stock": [
            {"id": p.id, "name": p.name, "quantity": p.quantity}
            for p in products
            if p.quantity < low_stock_threshold
        ],
        "low_stock_threshold": low_stock_threshold,
        "stats": {
            "product_count": int(product_count),
            "total_units": int(total_units),
            "stock_value_cents": int(stock_value),
        },
    }


def financial_analytics(session, tenant_id: int, period: str | None = None, now: datetime | None = None) -> dict:
    """Financial transactions by status and their daily evolution."""
    period, start = _period_window(period, now)

    filters = [Payment.tenant_id == tenant_id]
    if start is not None:
        filters.append(Payment.paid_at >= start)

    by_status = (
        session.query(
            Payment.status,
            func.count(Payment.id),
            func.coalesce(func.sum(Payment.amount_cents), 0),
        )
        .filter(*filters)
        .group_by(Payment.status)
        .order_by(Payment.status)
        .all()
    )

    day = func.strftime("%Y-%m-%d", Payment.paid_at).label("day")
    evolution = (
        session.query(
            day,
            func.coalesce(func.sum(case((Payment.status == "paid", Payment.amount_cents), else_=0)), 0),
            func.coalesce(func.sum(case((Payment.status == "pending", Payment.amount_cents), else_=0)), 0),
        )
        .filter(*filters)
        .group_by(day)
        .order_by(day)
        .all()
    )

    return {
        "period": period,
        "by_status": [
            {"status": status, "count": int(count), "total_cents": int(total)}
            for status, count, total in by_status
        ],
        "evolution": [
            {"date": d, "paid_cents": int(paid), "pending_cents": int(pending)}
            for d, paid, pending in evolution
        ],
    }


def financial_report(session, tenant_id: int, period: str | None = None, now: datetime | None = None) -> dict:
    """Sales revenue vs. settled/pending transactions, plus stock value and balance."""
    period, start = _period_window(period, now)

    sale_filters = [Sale.tenant_id == tenant_id]
    payment_filters = [Payment.tenant_id == tenant_id]
    if start is not None:
        sale_filters.append(Sale.created_at >= start)
        payment_filters.append(Payment.paid_at >= start)

    sales_total, sales_count = (
        session.query(func.coalesce(func.sum(Sale.total_cents), 0), func.count(Sale.id))
        .filter(*sale_filters)
        .one()
    )

    paid, pending, transactions = (
        session.query(
            func.coalesce(func.sum(case((Payment.status == "paid", Payment.amount_cents), else_=0)), 0),
            func.coalesce(func.sum(case((Payment.status == "pending", Payment.amount_cents), else_=0)), 0),
            func.count(Payment.id),
        )
        .filter(*payment_filters)
        .one()
    )

    stock_value = (
        session.query(func.coalesce(func.sum(Product.quantity * Product.unit_cost_cents), 0))
        .filter(Product.tenant_id == tenant_id)
        .scalar()
    )

    return {
        "period": period,
        "sales": {"total_cents": int(sales_total), "count": int(sales_count)},
        "payments": {
            "paid_cents": int(paid),
            "pending_cents": int(pending),
            "transactions": int(transactions),
        },
        "stock": {"value_cents": int(stock_value)},
        "balance_cents": int(sales_total) - int(paid),
    }


def system_stats(session, now: datetime | None = None) -> dict:
    """Platform-wide totals for administrators."""
    now = now or utcnow()

    total_revenue = session.query(func.coalesce(func.sum(Sale.total_cents), 0)).scalar()
    total_sales = session.query(func.count(Sale.id)).scalar()
    total_products = session.query(func.count(Product.id)).scalar()
    total_owners = session.query(func.count(Owner.id)).scalar()

    by_status = dict(
        session.query(Owner.payment_status, func.count(Owner.id))
        .group_by(Owner.payment_status)
        .all()
    )

    sales_count = func.count(Sale.id).label("sales_count")
    most_active = (
        session.query(
            Owner.id,
            Owner.name,
            Owner.email,
            sales_count,
            func.coalesce(func.sum(Sale.total_cents), 0).label("revenue_cents"),
        )
        .outerjoin(Sale, Sale.tenant_id == Owner.id)
        .group_by(Owner.id, Owner.name, Owner.email)
        .order_by(sales_count.desc(), Owner.id.asc())
        .limit(10)
        .all()
    )

    month = func.strftime("%Y-%m", Sale.created_at).label("month")
    by_month = (
        session.query(
            month,
            func.count(Sale.id),
            func.coalesce(func.sum(Sale.total_cents), 0),
        )
        .filter(Sale.created_at >= now - timedelta(days=365))
        .group_by(month)
        .order_by(month.desc())
        .all()
    )

    return {
        "total_revenue_cents": int(total_revenue),
        "total_sales": int(total_sales),
        "total_products": int(total_products),
        "total_owners": int(total_owners),
        "owners_by_status": {k: int(v) for k, v in by_status.items()},
        "most_active_owners": [
            {
                "id": row.id,
                "name": row.name,
                "email": row.email,
                "sales_count": int(row.sales_count),
                "revenue_cents": int(row.revenue_cents),
            }
            for row in most_active
        ],
        "revenue_by_month": [
            {"month": m, "sales_count": int(c), "revenue_cents": int(r)}
            for m, c, r in by_month
        ],
    }
