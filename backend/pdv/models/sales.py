from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Sale(db.Model):
    """
    Immutable record of a completed sale.

    WHY: line_items is a snapshot of what was sold at what price
    ([{product_id, quantity, unit_price_cents}, ...]). Later price edits do
    not rewrite history. The row is inserted in the same transaction that
    decrements stock, so a sale never exists without its stock movement.

    MULTI-TENANT: Sales are scoped to an owner via tenant_id. client_id, when
    present, always refers to a client of the same tenant.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("total_cents >= 0", name="ck_sales_total_non_negative"),
        db.Index("ix_sales_tenant_created", "tenant_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("owners.id"), nullable=False, index=True)
    client_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=True, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)
    payment_method_id = db.Column(db.Integer, db.ForeignKey("payment_methods.id"), nullable=True)

    total_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    line_items = db.Column(db.JSON, nullable=False)
    notes = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    client = db.relationship("Client", backref=db.backref("sales", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "client_id": self.client_id,
            "client_name": self.client.name if self.client else None,
            "employee_id": self.employee_id,
            "payment_method_id": self.payment_method_id,
            "total_cents": self.total_cents,
            "discount_cents": self.discount_cents,
            "line_items": list(self.line_items or []),
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
