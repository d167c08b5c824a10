from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, to_date_str


class Client(db.Model):
    """
    Customer master data for tracking purchases and loyalty.

    MULTI-TENANT: Clients are scoped to an owner via tenant_id.
    Sales, service orders, and loyalty records reference a client but are
    never cascaded from it.
    """
    __tablename__ = "clients"
    __table_args__ = (
        db.Index("ix_clients_tenant_name", "tenant_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("owners.id"), nullable=False, index=True)

    name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    tax_id = db.Column(db.String(32), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(128), nullable=True)
    state = db.Column(db.String(32), nullable=True)
    zip_code = db.Column(db.String(16), nullable=True)
    birth_date = db.Column(db.Date, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "tax_id": self.tax_id,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
            "birth_date": to_date_str(self.birth_date),
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
