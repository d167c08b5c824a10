# Overview: Service-layer operations for product categories.

from __future__ import annotations

from sqlalchemy import func

from ..errors import ConstraintViolationError, ValidationError
from ..models import Category, Product
from ..validation import ModelValidationPolicy, apply_patch, validate_payload
from .tenant_service import get_owned_or_404, scoped_query


CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "description", "parent_id"}),
    required_on_create=frozenset({"name"}),
)


def _check_parent(session, tenant_id: int, category_id: int | None, parent_id: int | None) -> None:
    if parent_id is None:
        return
    parent = get_owned_or_404(session, Category, parent_id, tenant_id)

    # Walk up from the new parent; reaching ourselves would create a cycle
    node = parent
    while node is not None:
        if category_id is not None and node.id == category_id:
            raise ValidationError("A category cannot be its own ancestor")
        node = node.parent


def list_categories(session, tenant_id: int) -> list[dict]:
    categories = scoped_query(session, Category, tenant_id).order_by(Category.name.asc()).all()
    counts = dict(
        session.query(Product.category_id, func.count(Product.id))
        .filter(Product.tenant_id == tenant_id, Product.category_id.isnot(None))
        .group_by(Product.category_id)
        .all()
    )
    result = []
    for category in categories:
        data = category.to_dict()
        data["product_count"] = int(counts.get(category.id, 0))
        data["parent_name"] = category.parent.name if category.parent else None
        result.append(data)
    return result


def get_category(session, tenant_id: int, category_id: int) -> dict:
    category = get_owned_or_404(session, Category, category_id, tenant_id)
    data = category.to_dict()
    data["subcategories"] = [child.to_dict() for child in category.children]
    data["products"] = [
        {"id": p.id, "name": p.name, "quantity": p.quantity, "sale_price_cents": p.sale_price_cents}
        for p in category.products
    ]
    return data


def create_category(session, tenant_id: int, payload: dict) -> Category:
    patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=False)
    _check_parent(session, tenant_id, None, patch.get("parent_id"))

    category = Category(tenant_id=tenant_id)
    apply_patch(category, patch)
    session.add(category)
    session.commit()
    return category


def update_category(session, tenant_id: int, category_id: int, payload: dict) -> Category:
    patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=True)
    if not patch:
        raise ValidationError("No fields to update")

    category = get_owned_or_404(session, Category, category_id, tenant_id)
    if "parent_id" in patch:
        _check_parent(session, tenant_id, category.id, patch["parent_id"])

    apply_patch(category, patch)
    session.commit()
    return category


def delete_category(session, tenant_id: int, category_id: int) -> None:
    category = get_owned_or_404(session, Category, category_id, tenant_id)

    if session.query(Category.id).filter(Category.parent_id == category.id).first() is not None:
        raise ConstraintViolationError("Category has subcategories and cannot be deleted")
    if session.query(Product.id).filter(Product.category_id == category.id).first() is not None:
        raise ConstraintViolationError("Category has products and cannot be deleted")

    session.delete(category)
    session.commit()
