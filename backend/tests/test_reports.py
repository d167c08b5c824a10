# Overview: Pytest coverage for analytics, financial reports, and admin statistics.

from datetime import datetime, timedelta

import pytest

from pdv.models import Payment, Sale
from pdv.services import reporting_service
from pdv.services.reporting_service import ReportError

from conftest import make_product


NOW = datetime(2026, 3, 15, 18, 30)


def _sale(session, tenant_id, created_at, items, total_cents=None):
    if total_cents is None:
        total_cents = sum(i["quantity"] * i["unit_price_cents"] for i in items)
    sale = Sale(
        tenant_id=tenant_id,
        total_cents=total_cents,
        discount_cents=0,
        line_items=items,
        created_at=created_at,
    )
    session.add(sale)
    session.commit()
    return sale


def _line(product_id, quantity, unit_price_cents, name="Item"):
    return {
        "product_id": product_id,
        "product_name": name,
        "quantity": quantity,
        "unit_price_cents": unit_price_cents,
    }


def _payment(session, tenant_id, amount_cents, status, paid_at):
    payment = Payment(tenant_id=tenant_id, amount_cents=amount_cents, status=status, paid_at=paid_at)
    session.add(payment)
    session.commit()
    return payment


class TestSalesAnalytics:
    """Sales grouped by period with best sellers."""

    @pytest.fixture
    def sales(self, db_session, owner_a, owner_b):
        _sale(db_session, owner_a.id, NOW.replace(hour=9), [_line(1, 2, 1000, "Cabo")])
        _sale(db_session, owner_a.id, NOW.replace(hour=10), [_line(2, 1, 5000, "Fone"), _line(1, 1, 1000, "Cabo")])
        _sale(db_session, owner_a.id, NOW - timedelta(days=3), [_line(1, 5, 1000, "Cabo")])
        _sale(db_session, owner_a.id, NOW - timedelta(days=60), [_line(3, 1, 90000, "Notebook")])
        # Another tenant's sale never shows up
        _sale(db_session, owner_b.id, NOW.replace(hour=11), [_line(9, 1, 777, "Other")])

    def test_daily(self, db_session, owner_a, sales):
        report = reporting_service.sales_analytics(db_session, owner_a.id, "daily", now=NOW)

        assert report["period"] == "daily"
        assert report["by_period"] == [
            {"period": "09", "sales_count": 1, "total_cents": 2000},
            {"period": "10", "sales_count": 1, "total_cents": 6000},
        ]
        assert report["summary"] == {"sales_count": 2, "revenue_cents": 8000, "average_ticket_cents": 4000}

    def test_weekly_groups_by_date(self, db_session, owner_a, sales):
        report = reporting_service.sales_analytics(db_session, owner_a.id, "weekly", now=NOW)

        assert [row["period"] for row in report["by_period"]] == ["2026-03-12", "2026-03-15"]
        assert report["summary"]["sales_count"] == 3

    def test_all_groups_by_month(self, db_session, owner_a, sales):
        report = reporting_service.sales_analytics(db_session, owner_a.id, None, now=NOW)

        assert report["period"] == "all"
        assert [row["period"] for row in report["by_period"]] == ["2026-01", "2026-03"]
        assert report["summary"]["revenue_cents"] == 103000

    def test_top_products(self, db_session, owner_a, sales):
        report = reporting_service.sales_analytics(db_session, owner_a.id, "monthly", now=NOW)

        assert report["top_products"] == [
            {"product_id": 1, "product_name": "Cabo", "units_sold": 8, "revenue_cents": 8000},
            {"product_id": 2, "product_name": "Fone", "units_sold": 1, "revenue_cents": 5000},
        ]

    def test_empty(self, db_session, owner_a):
        report = reporting_service.sales_analytics(db_session, owner_a.id, "weekly", now=NOW)

        assert report["by_period"] == []
        assert report["summary"] == {"sales_count": 0, "revenue_cents": 0, "average_ticket_cents": 0}
        assert report["top_products"] == []

    def test_invalid_period(self, db_session, owner_a):
        with pytest.raises(ReportError):
            reporting_service.sales_analytics(db_session, owner_a.id, "yearly")

    def test_invalid_period_api(self, client, owner_a_headers):
        response = client.get('/api/analytics/sales?period=yearly', headers=owner_a_headers)
        assert response.status_code == 400


class TestStockAnalytics:
    def test_stock_value_and_low_stock(self, db_session, owner_a):
        make_product(db_session, owner_a.id, name="Plenty", quantity=20, unit_cost_cents=100)
        make_product(db_session, owner_a.id, name="Scarce", quantity=2, unit_cost_cents=500)

        report = reporting_service.stock_analytics(db_session, owner_a.id, low_stock_threshold=5)

        assert [p["name"] for p in report["products"]] == ["Plenty", "Scarce"]
        assert report["low_stock"][0]["name"] == "Scarce"
        assert len(report["low_stock"]) == 1
        assert report["stats"] == {"product_count": 2, "total_units": 22, "stock_value_cents": 3000}

    def test_api_threshold_from_query(self, client, db_session, owner_a, owner_a_headers):
        make_product(db_session, owner_a.id, name="Eight", quantity=8)

        default = client.get('/api/analytics/stock', headers=owner_a_headers)
        raised = client.get('/api/analytics/stock?low_stock_below=10', headers=owner_a_headers)

        assert default.json['low_stock'] == []
        assert [p['name'] for p in raised.json['low_stock']] == ['Eight']


class TestFinancial:
    @pytest.fixture
    def payments(self, db_session, owner_a):
        _payment(db_session, owner_a.id, 3000, "paid", NOW - timedelta(days=1))
        _payment(db_session, owner_a.id, 2000, "pending", NOW - timedelta(days=1))
        _payment(db_session, owner_a.id, 1000, "paid", NOW - timedelta(days=2))
        _payment(db_session, owner_a.id, 9999, "paid", NOW - timedelta(days=90))

    def test_financial_analytics(self, db_session, owner_a, payments):
        report = reporting_service.financial_analytics(db_session, owner_a.id, "weekly", now=NOW)

        assert report["by_status"] == [
            {"status": "paid", "count": 2, "total_cents": 4000},
            {"status": "pending", "count": 1, "total_cents": 2000},
        ]
        assert report["evolution"] == [
            {"date": "2026-03-13", "paid_cents": 1000, "pending_cents": 0},
            {"date": "2026-03-14", "paid_cents": 3000, "pending_cents": 2000},
        ]

    def test_financial_report_balance(self, db_session, owner_a, payments):
        make_product(db_session, owner_a.id, quantity=4, unit_cost_cents=250)
        _sale(db_session, owner_a.id, NOW - timedelta(days=1), [_line(1, 1, 10000)])

        report = reporting_service.financial_report(db_session, owner_a.id, "monthly", now=NOW)

        assert report["sales"] == {"total_cents": 10000, "count": 1}
        assert report["payments"] == {"paid_cents": 4000, "pending_cents": 2000, "transactions": 3}
        assert report["stock"] == {"value_cents": 1000}
        assert report["balance_cents"] == 6000

    def test_transactions_api(self, client, owner_a_headers):
        created = client.post('/api/financial/transactions', json={
            'amount_cents': 4500, 'description': 'Rent', 'status': 'paid',
        }, headers=owner_a_headers)
        assert created.status_code == 201

        listed = client.get('/api/financial/transactions', headers=owner_a_headers)
        assert listed.json['count'] == 1

        report = client.get('/api/financial/reports?period=all', headers=owner_a_headers)
        assert report.json['payments']['paid_cents'] == 4500

    def test_non_positive_amount(self, client, owner_a_headers):
        response = client.post('/api/financial/transactions', json={'amount_cents': 0}, headers=owner_a_headers)
        assert response.status_code == 400


class TestSystemStats:
    def test_platform_totals(self, db_session, owner_a, owner_b, admin):
        _sale(db_session, owner_a.id, NOW - timedelta(days=10), [_line(1, 1, 1500)])
        _sale(db_session, owner_a.id, NOW - timedelta(days=40), [_line(1, 1, 2500)])
        _sale(db_session, owner_b.id, NOW - timedelta(days=10), [_line(2, 1, 700)])

        stats = reporting_service.system_stats(db_session, now=NOW)

        assert stats["total_revenue_cents"] == 4700
        assert stats["total_sales"] == 3
        assert stats["total_owners"] == 3
        assert stats["owners_by_status"] == {"trial": 2, "paid": 1}
        assert stats["most_active_owners"][0]["id"] == owner_a.id
        assert stats["most_active_owners"][0]["sales_count"] == 2
        assert stats["most_active_owners"][-1]["sales_count"] == 0
        assert stats["revenue_by_month"] == [
            {"month": "2026-03", "sales_count": 2, "revenue_cents": 2200},
            {"month": "2026-02", "sales_count": 1, "revenue_cents": 2500},
        ]
