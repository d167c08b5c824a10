# Overview: Service-layer operations for service orders (repair tickets).

"""
Service Order Service

WHY: Repair tickets get a human-facing number "OS<year><5-digit sequence>"
that restarts every year and is unique per tenant. Money fields are kept
consistent: total_cents = parts_cents + labor_cents on every write.

Status changes stamp their dates: completed sets completed_at, delivered
sets delivered_at.
"""

from __future__ import annotations

import re

from sqlalchemy import or_

from ..errors import ConstraintViolationError, ValidationError
from ..models import Client, Employee, LoyaltyHistoryEntry, PaymentMethod, ServiceOrder
from ..models.service_orders import SERVICE_ORDER_PRIORITIES, SERVICE_ORDER_STATUSES
from ..time_utils import utcnow
from ..validation import ModelValidationPolicy, apply_patch, validate_payload
from .concurrency import begin_write_transaction
from .pagination import paginate
from .tenant_service import get_optional_owned, get_owned_or_404, scoped_query


NUMBER_RE = re.compile(r"^OS(\d{4})(\d+)$")

_EDITABLE = frozenset({
    "client_id", "employee_id", "equipment", "brand", "model", "serial_number",
    "reported_defect", "technical_report", "service_performed", "notes",
    "parts_cents", "labor_cents", "paid_cents", "payment_method_id",
    "priority", "expected_at",
})

CREATE_POLICY = ModelValidationPolicy(
    writable_fields=_EDITABLE,
    required_on_create=frozenset({"equipment", "reported_defect"}),
    choices={"priority": SERVICE_ORDER_PRIORITIES},
    non_negative=frozenset({"parts_cents", "labor_cents", "paid_cents"}),
)

UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=_EDITABLE | {"status", "completed_at", "delivered_at"},
    choices={"priority": SERVICE_ORDER_PRIORITIES, "status": SERVICE_ORDER_STATUSES},
    non_negative=frozenset({"parts_cents", "labor_cents", "paid_cents"}),
)


def next_order_number(session, tenant_id: int, year: int | None = None) -> str:
    """Next "OS<year><seq>" number for the tenant; seq restarts at 1 each year."""
    year = year or utcnow().year
    prefix = f"OS{year}"
    numbers = (
        session.query(ServiceOrder.number)
        .filter(ServiceOrder.tenant_id == tenant_id, ServiceOrder.number.like(f"{prefix}%"))
        .all()
    )

    highest = 0
    for (number,) in numbers:
        match = NUMBER_RE.match(number)
        if match and int(match.group(1)) == year:
            highest = max(highest, int(match.group(2)))

    return f"{prefix}{highest + 1:05d}"


def _check_references(session, tenant_id: int, patch: dict) -> None:
    if "client_id" in patch:
        get_optional_owned(session, Client, patch["client_id"], tenant_id)
    if "employee_id" in patch:
        get_optional_owned(session, Employee, patch["employee_id"], tenant_id)
    if "payment_method_id" in patch:
        get_optional_owned(session, PaymentMethod, patch["payment_method_id"], tenant_id)


def _stamp_status_dates(order: ServiceOrder, status: str) -> None:
    if status == "completed" and order.completed_at is None:
        order.completed_at = utcnow()
    elif status == "delivered":
        if order.delivered_at is None:
            order.delivered_at = utcnow()
        if order.completed_at is None:
            order.completed_at = order.delivered_at


def list_orders(
    session,
    tenant_id: int,
    *,
    status: str | None = None,
    priority: str | None = None,
    client_id: int | None = None,
    search: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    query = scoped_query(session, ServiceOrder, tenant_id)
    if status:
        query = query.filter(ServiceOrder.status == status)
    if priority:
        query = query.filter(ServiceOrder.priority == priority)
    if client_id is not None:
        query = query.filter(ServiceOrder.client_id == client_id)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(
            ServiceOrder.number.ilike(like),
            ServiceOrder.equipment.ilike(like),
            ServiceOrder.serial_number.ilike(like),
        ))

    return paginate(
        query.order_by(ServiceOrder.created_at.desc(), ServiceOrder.id.desc()),
        page=page,
        per_page=per_page,
        serialize=lambda order: order.to_dict(),
    )


def get_order(session, tenant_id: int, order_id: int) -> ServiceOrder:
    return get_owned_or_404(session, ServiceOrder, order_id, tenant_id)


def create_order(session, tenant_id: int, payload: dict) -> ServiceOrder:
    patch = validate_payload(model=ServiceOrder, payload=payload, policy=CREATE_POLICY, partial=False)

    try:
        begin_write_transaction(session)
        _check_references(session, tenant_id, patch)

        order = ServiceOrder(
            tenant_id=tenant_id,
            number=next_order_number(session, tenant_id),
            status="waiting",
            priority="normal",
            parts_cents=0,
            labor_cents=0,
            paid_cents=0,
        )
        apply_patch(order, patch)
        order.total_cents = order.parts_cents + order.labor_cents

        session.add(order)
        session.commit()
    except Exception:
        session.rollback()
        raise
    return order


def update_order(session, tenant_id: int, order_id: int, payload: dict) -> ServiceOrder:
    patch = validate_payload(model=ServiceOrder, payload=payload, policy=UPDATE_POLICY, partial=True)
    if not patch:
        raise ValidationError("No fields to update")

    order = get_owned_or_404(session, ServiceOrder, order_id, tenant_id)
    _check_references(session, tenant_id, patch)

    apply_patch(order, patch)
    order.total_cents = order.parts_cents + order.labor_cents
    if "status" in patch:
        _stamp_status_dates(order, patch["status"])

    session.commit()
    return order


def change_status(session, tenant_id: int, order_id: int, status) -> ServiceOrder:
    if status not in SERVICE_ORDER_STATUSES:
        raise ValidationError(
            f"status must be one of: {', '.join(SERVICE_ORDER_STATUSES)}",
            {"status": status},
        )

    order = get_owned_or_404(session, ServiceOrder, order_id, tenant_id)
    order.status = status
    _stamp_status_dates(order, status)
    session.commit()
    return order


def delete_order(session, tenant_id: int, order_id: int) -> None:
    order = get_owned_or_404(session, ServiceOrder, order_id, tenant_id)
    if order.status == "delivered":
        raise ValidationError("Delivered service orders cannot be deleted")
    if session.query(LoyaltyHistoryEntry.id).filter_by(service_order_id=order.id).first() is not None:
        raise ConstraintViolationError("Service order is referenced by loyalty history and cannot be deleted")
    session.delete(order)
    session.commit()
