from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, to_date_str


PAYMENT_METHOD_KINDS = ("cash", "pix", "debit", "credit", "boleto", "transfer", "other")
BILL_STATUSES = ("pending", "paid", "overdue", "cancelled")
PAYMENT_STATUSES = ("pending", "paid")


class PaymentMethod(db.Model):
    """Tender types a tenant accepts (cash, pix, cards, ...)."""
    __tablename__ = "payment_methods"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "name", name="uq_payment_methods_tenant_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("owners.id"), nullable=False, index=True)
    name = db.Column(db.String(64), nullable=False)
    kind = db.Column(db.String(16), nullable=False)
    # Processor fee in basis points (250 == 2.5%)
    fee_basis_points = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind,
            "fee_basis_points": self.fee_basis_points,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Supplier(db.Model):
    """Vendor the tenant buys from; bills may reference one."""
    __tablename__ = "suppliers"
    __table_args__ = (
        db.Index("ix_suppliers_tenant_name", "tenant_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("owners.id"), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    tax_id = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    contact_name = db.Column(db.String(128), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "tax_id": self.tax_id,
            "email": self.email,
            "phone": self.phone,
            "contact_name": self.contact_name,
            "address": self.address,
            "notes": self.notes,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Bill(db.Model):
    """
    Account payable.

    WHY: paid_on is set only through the pay operation, which also flips
    status to 'paid'.
    """
    __tablename__ = "bills"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_bills_amount_positive"),
        db.CheckConstraint(
            "status IN ('pending', 'paid', 'overdue', 'cancelled')",
            name="ck_bills_status",
        ),
        db.Index("ix_bills_tenant_due", "tenant_id", "due_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("owners.id"), nullable=False, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True)
    payment_method_id = db.Column(db.Integer, db.ForeignKey("payment_methods.id"), nullable=True)

    description = db.Column(db.String(255), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    due_date = db.Column(db.Date, nullable=False)
    paid_on = db.Column(db.Date, nullable=True)
    status = db.Column(db.String(16), nullable=False, default="pending")
    category = db.Column(db.String(64), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    supplier = db.relationship("Supplier", backref=db.backref("bills", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier.name if self.supplier else None,
            "payment_method_id": self.payment_method_id,
            "description": self.description,
            "amount_cents": self.amount_cents,
            "due_date": to_date_str(self.due_date),
            "paid_on": to_date_str(self.paid_on),
            "status": self.status,
            "category": self.category,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }


class Payment(db.Model):
    """Financial transaction recorded by the tenant (pending or settled)."""
    __tablename__ = "payments"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_payments_amount_positive"),
        db.CheckConstraint("status IN ('pending', 'paid')", name="ck_payments_status"),
        db.Index("ix_payments_tenant_paid_at", "tenant_id", "paid_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("owners.id"), nullable=False, index=True)
    description = db.Column(db.String(255), nullable=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "description": self.description,
            "amount_cents": self.amount_cents,
            "status": self.status,
            "paid_at": to_utc_z(self.paid_at),
        }
