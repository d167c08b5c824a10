# Overview: Service-layer operations for payment methods, suppliers, bills, and financial transactions.

from __future__ import annotations

from datetime import date

from ..errors import ConstraintViolationError, ValidationError
from ..models import Bill, Payment, PaymentMethod, Sale, ServiceOrder, Supplier
from ..models.billing import BILL_STATUSES, PAYMENT_METHOD_KINDS, PAYMENT_STATUSES
from ..time_utils import utcnow
from ..validation import ModelValidationPolicy, apply_patch, validate_payload
from .pagination import paginate
from .tenant_service import get_optional_owned, get_owned_or_404, scoped_query


PAYMENT_METHOD_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "kind", "fee_basis_points", "is_active"}),
    required_on_create=frozenset({"name", "kind"}),
    choices={"kind": PAYMENT_METHOD_KINDS},
    non_negative=frozenset({"fee_basis_points"}),
)

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "name", "tax_id", "email", "phone", "contact_name", "address", "notes", "is_active",
    }),
    required_on_create=frozenset({"name"}),
)

BILL_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "supplier_id", "payment_method_id", "description", "amount_cents",
        "due_date", "status", "category", "notes",
    }),
    required_on_create=frozenset({"description", "amount_cents", "due_date"}),
    choices={"status": BILL_STATUSES},
    non_negative=frozenset({"amount_cents"}),
)

PAYMENT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"description", "amount_cents", "status", "paid_at"}),
    required_on_create=frozenset({"amount_cents"}),
    choices={"status": PAYMENT_STATUSES},
    non_negative=frozenset({"amount_cents"}),
)


# -- payment methods ---------------------------------------------------------

def list_payment_methods(session, tenant_id: int, *, active_only: bool = False) -> list[PaymentMethod]:
    query = scoped_query(session, PaymentMethod, tenant_id)
    if active_only:
        query = query.filter(PaymentMethod.is_active.is_(True))
    return query.order_by(PaymentMethod.name.asc()).all()


def create_payment_method(session, tenant_id: int, payload: dict) -> PaymentMethod:
    patch = validate_payload(model=PaymentMethod, payload=payload, policy=PAYMENT_METHOD_POLICY, partial=False)
    if patch.get("fee_basis_points", 0) > 10000:
        raise ValidationError("fee_basis_points cannot exceed 10000 (100%)")

    method = PaymentMethod(tenant_id=tenant_id, fee_basis_points=0, is_active=True)
    apply_patch(method, patch)
    session.add(method)
    session.commit()
    return method


def update_payment_method(session, tenant_id: int, method_id: int, payload: dict) -> PaymentMethod:
    patch = validate_payload(model=PaymentMethod, payload=payload, policy=PAYMENT_METHOD_POLICY, partial=True)
    if not patch:
        raise ValidationError("No fields to update")
    if patch.get("fee_basis_points", 0) > 10000:
        raise ValidationError("fee_basis_points cannot exceed 10000 (100%)")

    method = get_owned_or_404(session, PaymentMethod, method_id, tenant_id)
    apply_patch(method, patch)
    session.commit()
    return method


def delete_payment_method(session, tenant_id: int, method_id: int) -> bool:
    """
    Delete an unused payment method.

    Methods already used by sales, service orders, or bills are deactivated
    instead. Returns True when the row was deleted.
    """
    method = get_owned_or_404(session, PaymentMethod, method_id, tenant_id)

    in_use = any(
        session.query(model.id).filter(model.payment_method_id == method.id).first() is not None
        for model in (Sale, ServiceOrder, Bill)
    )
    if in_use:
        method.is_active = False
        session.commit()
        return False

    session.delete(method)
    session.commit()
    return True


# -- suppliers ---------------------------------------------------------------

def list_suppliers(session, tenant_id: int, *, active_only: bool = False) -> list[Supplier]:
    query = scoped_query(session, Supplier, tenant_id)
    if active_only:
        query = query.filter(Supplier.is_active.is_(True))
    return query.order_by(Supplier.name.asc()).all()


def get_supplier(session, tenant_id: int, supplier_id: int) -> Supplier:
    return get_owned_or_404(session, Supplier, supplier_id, tenant_id)


def create_supplier(session, tenant_id: int, payload: dict) -> Supplier:
    patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=False)
    supplier = Supplier(tenant_id=tenant_id, is_active=True)
    apply_patch(supplier, patch)
    session.add(supplier)
    session.commit()
    return supplier


def update_supplier(session, tenant_id: int, supplier_id: int, payload: dict) -> Supplier:
    patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=True)
    if not patch:
        raise ValidationError("No fields to update")
    supplier = get_owned_or_404(session, Supplier, supplier_id, tenant_id)
    apply_patch(supplier, patch)
    session.commit()
    return supplier


def delete_supplier(session, tenant_id: int, supplier_id: int) -> None:
    supplier = get_owned_or_404(session, Supplier, supplier_id, tenant_id)
    if session.query(Bill.id).filter(Bill.supplier_id == supplier.id).first() is not None:
        raise ConstraintViolationError("Supplier has bills and cannot be deleted")
    session.delete(supplier)
    session.commit()


# -- bills -------------------------------------------------------------------

def _check_bill_references(session, tenant_id: int, patch: dict) -> None:
    if "supplier_id" in patch:
        get_optional_owned(session, Supplier, patch["supplier_id"], tenant_id)
    if "payment_method_id" in patch:
        get_optional_owned(session, PaymentMethod, patch["payment_method_id"], tenant_id)
    if "amount_cents" in patch and patch["amount_cents"] <= 0:
        raise ValidationError("amount_cents must be > 0")


def list_bills(session, tenant_id: int, *, status: str | None = None,
               due_from: date | None = None, due_to: date | None = None) -> list[Bill]:
    query = scoped_query(session, Bill, tenant_id)
    if status:
        query = query.filter(Bill.status == status)
    if due_from is not None:
        query = query.filter(Bill.due_date >= due_from)
    if due_to is not None:
        query = query.filter(Bill.due_date <= due_to)
    return query.order_by(Bill.due_date.asc(), Bill.id.asc()).all()


def create_bill(session, tenant_id: int, payload: dict) -> Bill:
    patch = validate_payload(model=Bill, payload=payload, policy=BILL_POLICY, partial=False)
    _check_bill_references(session, tenant_id, patch)

    bill = Bill(tenant_id=tenant_id, status="pending")
    apply_patch(bill, patch)
    if bill.status == "paid" and bill.paid_on is None:
        bill.paid_on = utcnow().date()
    session.add(bill)
    session.commit()
    return bill


def update_bill(session, tenant_id: int, bill_id: int, payload: dict) -> Bill:
    patch = validate_payload(model=Bill, payload=payload, policy=BILL_POLICY, partial=True)
    if not patch:
        raise ValidationError("No fields to update")
    _check_bill_references(session, tenant_id, patch)

    bill = get_owned_or_404(session, Bill, bill_id, tenant_id)
    apply_patch(bill, patch)
    if bill.status == "paid" and bill.paid_on is None:
        bill.paid_on = utcnow().date()
    elif bill.status != "paid":
        bill.paid_on = None
    session.commit()
    return bill


def pay_bill(session, tenant_id: int, bill_id: int, paid_on: date | None = None) -> Bill:
    bill = get_owned_or_404(session, Bill, bill_id, tenant_id)
    if bill.status == "cancelled":
        raise ValidationError("Cancelled bills cannot be paid")
    bill.status = "paid"
    bill.paid_on = paid_on or utcnow().date()
    session.commit()
    return bill


def delete_bill(session, tenant_id: int, bill_id: int) -> None:
    bill = get_owned_or_404(session, Bill, bill_id, tenant_id)
    session.delete(bill)
    session.commit()


def bills_summary(session, tenant_id: int, today: date | None = None) -> dict:
    """Totals of open, overdue, and paid bills. Pending bills past due count as overdue."""
    today = today or utcnow().date()
    summary = {"pending_cents": 0, "overdue_cents": 0, "paid_cents": 0, "open_count": 0}
    for bill in scoped_query(session, Bill, tenant_id).filter(Bill.status != "cancelled").all():
        if bill.status == "paid":
            summary["paid_cents"] += bill.amount_cents
            continue
        summary["open_count"] += 1
        if bill.status == "overdue" or bill.due_date < today:
            summary["overdue_cents"] += bill.amount_cents
        else:
            summary["pending_cents"] += bill.amount_cents
    return summary


# -- financial transactions -------------------------------------------------

def record_payment(session, tenant_id: int, payload: dict) -> Payment:
    patch = validate_payload(model=Payment, payload=payload, policy=PAYMENT_POLICY, partial=False)
    if patch["amount_cents"] <= 0:
        raise ValidationError("amount_cents must be > 0")

    payment = Payment(tenant_id=tenant_id, status="pending")
    apply_patch(payment, patch)
    if payment.paid_at is None:
        payment.paid_at = utcnow()
    session.add(payment)
    session.commit()
    return payment


def list_payments(session, tenant_id: int, *, start=None, end=None,
                  page: int | None = None, per_page: int | None = None) -> dict:
    query = scoped_query(session, Payment, tenant_id)
    if start is not None:
        query = query.filter(Payment.paid_at >= start)
    if end is not None:
        query = query.filter(Payment.paid_at <= end)
    return paginate(
        query.order_by(Payment.paid_at.desc(), Payment.id.desc()),
        page=page,
        per_page=per_page,
        serialize=lambda payment: payment.to_dict(),
    )
