from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


SERVICE_ORDER_STATUSES = (
    "waiting", "analysing", "approved", "in_progress", "completed", "delivered", "cancelled",
)
SERVICE_ORDER_PRIORITIES = ("low", "normal", "high", "urgent")


class ServiceOrder(db.Model):
    """
    Repair/service ticket.

    WHY: number is human-facing ("OS" + year + 5-digit sequence), unique per
    tenant. total_cents is always parts_cents + labor_cents and is recomputed
    whenever either changes.

    MULTI-TENANT: Scoped via tenant_id; client_id/employee_id must belong to
    the same tenant.
    """
    __tablename__ = "service_orders"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "number", name="uq_service_orders_tenant_number"),
        db.CheckConstraint("parts_cents >= 0", name="ck_service_orders_parts_non_negative"),
        db.CheckConstraint("labor_cents >= 0", name="ck_service_orders_labor_non_negative"),
        db.CheckConstraint(
            "status IN ('waiting', 'analysing', 'approved', 'in_progress', 'completed', 'delivered', 'cancelled')",
            name="ck_service_orders_status",
        ),
        db.CheckConstraint(
            "priority IN ('low', 'normal', 'high', 'urgent')",
            name="ck_service_orders_priority",
        ),
        db.Index("ix_service_orders_tenant_status", "tenant_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("owners.id"), nullable=False, index=True)
    client_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=True, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)

    number = db.Column(db.String(16), nullable=False)

    equipment = db.Column(db.String(128), nullable=False)
    brand = db.Column(db.String(64), nullable=True)
    model = db.Column(db.String(64), nullable=True)
    serial_number = db.Column(db.String(64), nullable=True)
    reported_defect = db.Column(db.Text, nullable=False)
    technical_report = db.Column(db.Text, nullable=True)
    service_performed = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    parts_cents = db.Column(db.Integer, nullable=False, default=0)
    labor_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)
    paid_cents = db.Column(db.Integer, nullable=False, default=0)
    payment_method_id = db.Column(db.Integer, db.ForeignKey("payment_methods.id"), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="waiting")
    priority = db.Column(db.String(16), nullable=False, default="normal")

    expected_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    delivered_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    client = db.relationship("Client", backref=db.backref("service_orders", lazy=True))
    employee = db.relationship("Employee")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "number": self.number,
            "client_id": self.client_id,
            "client_name": self.client.name if self.client else None,
            "employee_id": self.employee_id,
            "employee_name": self.employee.name if self.employee else None,
            "equipment": self.equipment,
            "brand": self.brand,
            "model": self.model,
            "serial_number": self.serial_number,
            "reported_defect": self.reported_defect,
            "technical_report": self.technical_report,
            "service_performed": self.service_performed,
            "notes": self.notes,
            "parts_cents": self.parts_cents,
            "labor_cents": self.labor_cents,
            "total_cents": self.total_cents,
            "paid_cents": self.paid_cents,
            "payment_method_id": self.payment_method_id,
            "status": self.status,
            "priority": self.priority,
            "expected_at": to_utc_z(self.expected_at),
            "completed_at": to_utc_z(self.completed_at),
            "delivered_at": to_utc_z(self.delivered_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
