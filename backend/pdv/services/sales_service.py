# Overview: Service-layer operations for sales; encapsulates business logic and database work.

"""
Sale Transaction Service

WHY: A sale is only real if stock moved. record_sale validates every line,
decrements inventory, and inserts the sale row in one atomic unit: either
all of it is committed or none of it is.

CONCURRENCY: On SQLite the unit starts with BEGIN IMMEDIATE, which takes the
write lock before the availability check. Elsewhere product rows are locked
with SELECT ... FOR UPDATE. The decrement itself is a guarded
UPDATE ... WHERE quantity >= n, so even a missed lock cannot push stock
below zero (the CHECK constraint is the last line).

MULTI-TENANT: The client, every product, the employee, and the payment
method must belong to the acting tenant. Foreign ids are reported as
NotFound, never as "belongs to someone else".
"""

from __future__ import annotations

from flask import current_app, has_app_context
from sqlalchemy import func, update

from ..errors import InsufficientStockError, ValidationError
from ..models import Client, Employee, PaymentMethod, Product, Sale
from ..validation import MAX_PRICE_CENTS, coerce_int
from . import loyalty_service
from .concurrency import begin_write_transaction
from .pagination import paginate
from .tenant_service import get_optional_owned, get_owned_or_404, scoped_query


def _normalize_lines(line_items) -> list[dict]:
    if not isinstance(line_items, list) or not line_items:
        raise ValidationError("line_items must be a non-empty list")

    lines = []
    for index, raw in enumerate(line_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"line_items[{index}] must be an object")

        if "product_id" not in raw or "quantity" not in raw:
            raise ValidationError(f"line_items[{index}] requires product_id and quantity")

        product_id = coerce_int(raw["product_id"], f"line_items[{index}].product_id")
        quantity = coerce_int(raw["quantity"], f"line_items[{index}].quantity")
        if quantity <= 0:
            raise ValidationError(f"line_items[{index}].quantity must be > 0")

        unit_price_cents = raw.get("unit_price_cents")
        if unit_price_cents is not None:
            unit_price_cents = coerce_int(unit_price_cents, f"line_items[{index}].unit_price_cents")
            if unit_price_cents < 0 or unit_price_cents > MAX_PRICE_CENTS:
                raise ValidationError(f"line_items[{index}].unit_price_cents is out of range")

        lines.append({
            "product_id": product_id,
            "quantity": quantity,
            "unit_price_cents": unit_price_cents,
        })
    return lines


def _aggregate_quantities(lines: list[dict]) -> dict[int, int]:
    """Total requested quantity per product, in first-seen order."""
    totals: dict[int, int] = {}
    for line in lines:
        totals[line["product_id"]] = totals.get(line["product_id"], 0) + line["quantity"]
    return totals


def _insufficient(product: Product, requested: int, available: int) -> InsufficientStockError:
    return InsufficientStockError(
        f"Insufficient stock for {product.name}",
        {
            "product_id": product.id,
            "product_name": product.name,
            "requested": requested,
            "available": available,
        },
    )


def _decrement_stock(session, tenant_id: int, product: Product, quantity: int) -> None:
    result = session.execute(
        update(Product)
        .where(
            Product.id == product.id,
            Product.tenant_id == tenant_id,
            Product.quantity >= quantity,
        )
        .values(quantity=Product.quantity - quantity, updated_at=func.now())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        session.refresh(product)
        raise _insufficient(product, quantity, product.quantity)


def _award_purchase_points(session, tenant_id: int, sale: Sale) -> None:
    config = loyalty_service.find_config(session, tenant_id)
    if config is None or not config.is_active:
        return

    points = loyalty_service.points_for_purchase(sale.total_cents, config)
    if points <= 0:
        return

    loyalty_service.apply_points_change(
        session,
        tenant_id=tenant_id,
        client_id=sale.client_id,
        kind=loyalty_service.EARN,
        points=points,
        description=f"Purchase #{sale.id}",
        sale_id=sale.id,
        commit=False,
    )


def record_sale(
    session,
    *,
    tenant_id: int,
    line_items,
    client_id: int | None = None,
    total_cents: int | None = None,
    discount_cents: int | None = None,
    employee_id: int | None = None,
    payment_method_id: int | None = None,
    notes: str | None = None,
) -> Sale:
    """
    Record a sale: validate stock, decrement inventory, insert the sale.

    Lines without unit_price_cents snapshot the product's current sale
    price. When total_cents is omitted it is computed as the sum of the
    lines minus discount_cents. If the tenant's loyalty program is active
    and a client is given, purchase points are earned in the same unit.

    Raises:
        ValidationError: malformed lines or amounts
        NotFoundError: client/product/employee/payment method missing or foreign
        InsufficientStockError: a product has fewer units than requested
    """
    lines = _normalize_lines(line_items)
    requested = _aggregate_quantities(lines)

    discount_cents = coerce_int(discount_cents, "discount_cents") if discount_cents is not None else 0
    if discount_cents < 0:
        raise ValidationError("discount_cents must be >= 0")
    if total_cents is not None:
        total_cents = coerce_int(total_cents, "total_cents")
        if total_cents < 0 or total_cents > MAX_PRICE_CENTS:
            raise ValidationError("total_cents is out of range")
    if client_id is not None:
        client_id = coerce_int(client_id, "client_id")
    if employee_id is not None:
        employee_id = coerce_int(employee_id, "employee_id")
    if payment_method_id is not None:
        payment_method_id = coerce_int(payment_method_id, "payment_method_id")

    try:
        begin_write_transaction(session)

        get_optional_owned(session, Client, client_id, tenant_id)
        get_optional_owned(session, Employee, employee_id, tenant_id)
        get_optional_owned(session, PaymentMethod, payment_method_id, tenant_id)

        products: dict[int, Product] = {}
        for product_id, quantity in requested.items():
            product = get_owned_or_404(session, Product, product_id, tenant_id, lock=True)
            if product.quantity < quantity:
                raise _insufficient(product, quantity, product.quantity)
            products[product_id] = product

        for product_id, quantity in requested.items():
            _decrement_stock(session, tenant_id, products[product_id], quantity)

        snapshot = []
        for line in lines:
            unit_price = line["unit_price_cents"]
            if unit_price is None:
                unit_price = products[line["product_id"]].sale_price_cents
            snapshot.append({
                "product_id": line["product_id"],
                "product_name": products[line["product_id"]].name,
                "quantity": line["quantity"],
                "unit_price_cents": unit_price,
            })

        if total_cents is None:
            subtotal = sum(item["quantity"] * item["unit_price_cents"] for item in snapshot)
            total_cents = max(0, subtotal - discount_cents)

        sale = Sale(
            tenant_id=tenant_id,
            client_id=client_id,
            employee_id=employee_id,
            payment_method_id=payment_method_id,
            total_cents=total_cents,
            discount_cents=discount_cents,
            line_items=snapshot,
            notes=notes,
        )
        session.add(sale)
        session.flush()

        if client_id is not None:
            _award_purchase_points(session, tenant_id, sale)

        session.commit()
    except Exception:
        session.rollback()
        raise

    if has_app_context():
        current_app.logger.info(
            "Recorded sale %s for tenant %s (%d lines, %d cents)",
            sale.id, tenant_id, len(snapshot), total_cents,
        )
    return sale


def get_sale(session, tenant_id: int, sale_id: int) -> Sale:
    return get_owned_or_404(session, Sale, sale_id, tenant_id)


def list_sales(
    session,
    tenant_id: int,
    *,
    client_id: int | None = None,
    start=None,
    end=None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """Newest-first page of sales for a tenant."""
    query = scoped_query(session, Sale, tenant_id)
    if client_id is not None:
        query = query.filter(Sale.client_id == client_id)
    if start is not None:
        query = query.filter(Sale.created_at >= start)
    if end is not None:
        query = query.filter(Sale.created_at <= end)

    return paginate(
        query.order_by(Sale.created_at.desc(), Sale.id.desc()),
        page=page,
        per_page=per_page,
        serialize=lambda sale: sale.to_dict(),
    )
