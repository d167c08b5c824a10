# Overview: Pytest coverage for service order numbering, totals, and status dates.

import pytest

from pdv.errors import NotFoundError, ValidationError
from pdv.models import ServiceOrder
from pdv.services import service_order_service
from pdv.time_utils import utcnow


def _create(session, tenant_id, **extra):
    payload = {"equipment": "Notebook", "reported_defect": "Does not boot"}
    payload.update(extra)
    return service_order_service.create_order(session, tenant_id, payload)


class TestOrderNumbering:
    """OS<year><5-digit sequence>, per tenant, restarting every year."""

    def test_sequence_per_tenant(self, db_session, owner_a, owner_b):
        year = utcnow().year

        first_a = _create(db_session, owner_a.id)
        second_a = _create(db_session, owner_a.id)
        first_b = _create(db_session, owner_b.id)

        assert first_a.number == f"OS{year}00001"
        assert second_a.number == f"OS{year}00002"
        assert first_b.number == f"OS{year}00001"

    def test_sequence_restarts_each_year(self, db_session, owner_a):
        db_session.add(ServiceOrder(
            tenant_id=owner_a.id, number="OS202400037", equipment="Old", reported_defect="x",
            status="delivered", priority="normal", parts_cents=0, labor_cents=0, total_cents=0, paid_cents=0,
        ))
        db_session.commit()

        assert service_order_service.next_order_number(db_session, owner_a.id, year=2024) == "OS202400038"
        assert service_order_service.next_order_number(db_session, owner_a.id, year=2025) == "OS202500001"

    def test_numbers_survive_deletion_gaps(self, db_session, owner_a):
        first = _create(db_session, owner_a.id)
        second = _create(db_session, owner_a.id)
        service_order_service.delete_order(db_session, owner_a.id, first.id)

        third = _create(db_session, owner_a.id)
        assert third.number[-5:] == "00003"
        assert second.number[-5:] == "00002"


class TestOrderTotals:
    def test_total_is_parts_plus_labor(self, db_session, owner_a):
        order = _create(db_session, owner_a.id, parts_cents=12000, labor_cents=8000)
        assert order.total_cents == 20000

    def test_total_recomputed_on_update(self, db_session, owner_a):
        order = _create(db_session, owner_a.id, parts_cents=12000, labor_cents=8000)

        updated = service_order_service.update_order(db_session, owner_a.id, order.id, {"labor_cents": 3000})
        assert updated.total_cents == 15000

    def test_negative_amount_rejected(self, db_session, owner_a):
        with pytest.raises(ValidationError):
            _create(db_session, owner_a.id, parts_cents=-1)

    def test_required_fields(self, db_session, owner_a):
        with pytest.raises(ValidationError):
            service_order_service.create_order(db_session, owner_a.id, {"equipment": "Phone"})


class TestOrderStatus:
    def test_completed_stamps_date(self, db_session, owner_a):
        order = _create(db_session, owner_a.id)
        assert order.completed_at is None

        order = service_order_service.change_status(db_session, owner_a.id, order.id, "completed")
        assert order.completed_at is not None
        assert order.delivered_at is None

    def test_delivered_stamps_both_dates(self, db_session, owner_a):
        order = _create(db_session, owner_a.id)

        order = service_order_service.change_status(db_session, owner_a.id, order.id, "delivered")
        assert order.delivered_at is not None
        assert order.completed_at == order.delivered_at

    def test_invalid_status(self, db_session, owner_a):
        order = _create(db_session, owner_a.id)
        with pytest.raises(ValidationError):
            service_order_service.change_status(db_session, owner_a.id, order.id, "lost")

    def test_delivered_cannot_be_deleted(self, db_session, owner_a):
        order = _create(db_session, owner_a.id)
        service_order_service.change_status(db_session, owner_a.id, order.id, "delivered")

        with pytest.raises(ValidationError):
            service_order_service.delete_order(db_session, owner_a.id, order.id)


class TestOrderScoping:
    def test_foreign_client_rejected(self, db_session, owner_a, client_b):
        with pytest.raises(NotFoundError):
            _create(db_session, owner_a.id, client_id=client_b.id)
        assert db_session.query(ServiceOrder).count() == 0

    def test_api_round(self, client, client_a, owner_a_headers, owner_b_headers):
        created = client.post('/api/service-orders', json={
            'equipment': 'Smartphone',
            'reported_defect': 'Broken screen',
            'client_id': client_a.id,
            'priority': 'high',
        }, headers=owner_a_headers)
        assert created.status_code == 201
        order_id = created.json['id']

        status = client.put(f'/api/service-orders/{order_id}/status', json={
            'status': 'in_progress',
        }, headers=owner_a_headers)
        assert status.status_code == 200
        assert status.json['status'] == 'in_progress'

        listed = client.get('/api/service-orders?priority=high', headers=owner_a_headers)
        assert listed.json['count'] == 1

        assert client.get(f'/api/service-orders/{order_id}', headers=owner_b_headers).status_code == 404
