from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Category(db.Model):
    """
    Product category, optionally nested under a parent category.

    MULTI-TENANT: parent_id must point at a category of the same tenant
    (enforced in category_service).
    """
    __tablename__ = "categories"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "name", name="uq_categories_tenant_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("owners.id"), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    description = db.Column(db.String(255), nullable=True)
    parent_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    parent = db.relationship("Category", remote_side=[id], backref=db.backref("children", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "description": self.description,
            "parent_id": self.parent_id,
            "created_at": to_utc_z(self.created_at),
        }


class Product(db.Model):
    """
    Stock item with an on-hand quantity counter.

    WHY: quantity is the single source of truth for what can be sold. Sales
    decrement it with a guarded UPDATE, and the CHECK constraint makes a
    negative count impossible even if a code path forgets the guard.

    MULTI-TENANT: Products are scoped to an owner via tenant_id.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        db.CheckConstraint("unit_cost_cents >= 0", name="ck_products_unit_cost_non_negative"),
        db.CheckConstraint("sale_price_cents >= 0", name="ck_products_sale_price_non_negative"),
        db.Index("ix_products_tenant_name", "tenant_id", "name"),
        db.Index("ix_products_tenant_barcode", "tenant_id", "barcode"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("owners.id"), nullable=False, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)

    name = db.Column(db.String(128), nullable=False)
    description = db.Column(db.Text, nullable=True)
    barcode = db.Column(db.String(64), nullable=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    unit_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    sale_price_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    category = db.relationship("Category", backref=db.backref("products", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "category_id": self.category_id,
            "category_name": self.category.name if self.category else None,
            "name": self.name,
            "description": self.description,
            "barcode": self.barcode,
            "quantity": self.quantity,
            "unit_cost_cents": self.unit_cost_cents,
            "sale_price_cents": self.sale_price_cents,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
