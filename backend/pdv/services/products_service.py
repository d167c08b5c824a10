# Overview: Service-layer operations for products (stock items); encapsulates business logic and database work.

from __future__ import annotations

from sqlalchemy import or_

from ..errors import ConstraintViolationError, ValidationError
from ..models import Category, Product, Reward
from ..validation import ModelValidationPolicy, apply_patch, validate_payload
from .pagination import paginate
from .tenant_service import get_optional_owned, get_owned_or_404, scoped_query


PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "name", "description", "barcode", "category_id",
        "quantity", "unit_cost_cents", "sale_price_cents",
    }),
    required_on_create=frozenset({"name", "quantity", "unit_cost_cents"}),
    non_negative=frozenset({"quantity", "unit_cost_cents", "sale_price_cents"}),
)


def list_products(
    session,
    tenant_id: int,
    *,
    search: str | None = None,
    category_id: int | None = None,
    low_stock_below: int | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Tenant-scoped product listing with optional pagination.

    search matches name, description, or barcode (case-insensitive).
    low_stock_below keeps only products with quantity under the threshold.
    """
    query = scoped_query(session, Product, tenant_id)

    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(
            Product.name.ilike(like),
            Product.description.ilike(like),
            Product.barcode.ilike(like),
        ))
    if category_id is not None:
        query = query.filter(Product.category_id == category_id)
    if low_stock_below is not None:
        query = query.filter(Product.quantity < low_stock_below)

    return paginate(
        query.order_by(Product.name.asc(), Product.id.asc()),
        page=page,
        per_page=per_page,
        serialize=lambda product: product.to_dict(),
    )


def get_product(session, tenant_id: int, product_id: int) -> Product:
    return get_owned_or_404(session, Product, product_id, tenant_id)


def create_product(session, tenant_id: int, payload: dict) -> Product:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    get_optional_owned(session, Category, patch.get("category_id"), tenant_id)

    product = Product(tenant_id=tenant_id, sale_price_cents=0)
    apply_patch(product, patch)
    if "sale_price_cents" not in patch:
        product.sale_price_cents = product.unit_cost_cents
    session.add(product)
    session.commit()
    return product


def update_product(session, tenant_id: int, product_id: int, payload: dict) -> Product:
    """
    Apply a validated partial update.

    Stock counts can be corrected here (inventory recount); sales never go
    through this path.
    """
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    if not patch:
        raise ValidationError("No fields to update")

    product = get_owned_or_404(session, Product, product_id, tenant_id)
    if "category_id" in patch:
        get_optional_owned(session, Category, patch["category_id"], tenant_id)

    apply_patch(product, patch)
    session.commit()
    return product


def delete_product(session, tenant_id: int, product_id: int) -> None:
    product = get_owned_or_404(session, Product, product_id, tenant_id)

    if session.query(Reward.id).filter(Reward.product_id == product.id).first() is not None:
        raise ConstraintViolationError("Product is offered as a loyalty reward and cannot be deleted")

    session.delete(product)
    session.commit()
