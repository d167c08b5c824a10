from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, to_date_str


OWNER_PAYMENT_STATUSES = ("trial", "pending", "paid", "cancelled")
EMPLOYEE_ROLES = ("seller", "stock", "support", "manager", "admin")


class Owner(db.Model):
    """
    Store owner account. The owner IS the tenant.

    MULTI-TENANT: Every tenant-scoped table carries tenant_id -> owners.id.
    Employees act on behalf of exactly one owner.

    WHY: The account also carries its subscription state (payment_status,
    trial_ends_at). Writes are blocked once a trial lapses or the account is
    marked pending/cancelled.
    """
    __tablename__ = "owners"
    __table_args__ = (
        db.CheckConstraint(
            "payment_status IN ('trial', 'pending', 'paid', 'cancelled')",
            name="ck_owners_payment_status",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.String(255), nullable=True)

    payment_status = db.Column(db.String(16), nullable=False, default="trial", index=True)
    trial_ends_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Platform administrator (cross-tenant reporting, system settings)
    is_admin = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "payment_status": self.payment_status,
            "trial_ends_at": to_utc_z(self.trial_ends_at),
            "is_admin": self.is_admin,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at),
        }


class Employee(db.Model):
    """
    Employee working for one owner.

    MULTI-TENANT: tenant_id is fixed at creation. Employee sessions capture
    it at login so every request is scoped without a second lookup.

    SECURITY: password_hash may be NULL until the owner sets one; such
    employees cannot log in.
    """
    __tablename__ = "employees"
    __table_args__ = (
        db.CheckConstraint(
            "role IN ('seller', 'stock', 'support', 'manager', 'admin')",
            name="ck_employees_role",
        ),
        db.Index("ix_employees_tenant_active", "tenant_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("owners.id"), nullable=False, index=True)

    name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True)
    password_hash = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    tax_id = db.Column(db.String(32), nullable=True)

    role = db.Column(db.String(16), nullable=False, default="seller")
    permissions = db.Column(db.JSON, nullable=False, default=list)
    salary_cents = db.Column(db.Integer, nullable=True)
    hired_on = db.Column(db.Date, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    last_access_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    owner = db.relationship("Owner", backref=db.backref("employees", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "tax_id": self.tax_id,
            "role": self.role,
            "permissions": list(self.permissions or []),
            "salary_cents": self.salary_cents,
            "hired_on": to_date_str(self.hired_on),
            "is_active": self.is_active,
            "has_password": self.password_hash is not None,
            "last_access_at": to_utc_z(self.last_access_at),
            "created_at": to_utc_z(self.created_at),
        }


class StoreSettings(db.Model):
    """Per-tenant store profile used on receipts and the storefront header."""
    __tablename__ = "store_settings"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", name="uq_store_settings_tenant"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("owners.id"), nullable=False)

    store_name = db.Column(db.String(128), nullable=True)
    tax_id = db.Column(db.String(32), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    logo_url = db.Column(db.String(512), nullable=True)
    primary_color = db.Column(db.String(16), nullable=False, default="#2563eb")
    secondary_color = db.Column(db.String(16), nullable=False, default="#1e40af")
    receipt_message = db.Column(db.String(255), nullable=True)
    opening_hours = db.Column(db.String(255), nullable=True)
    website = db.Column(db.String(255), nullable=True)
    instagram = db.Column(db.String(128), nullable=True)
    facebook = db.Column(db.String(128), nullable=True)
    whatsapp = db.Column(db.String(32), nullable=True)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "tenant_id": self.tenant_id,
            "store_name": self.store_name,
            "tax_id": self.tax_id,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "logo_url": self.logo_url,
            "primary_color": self.primary_color,
            "secondary_color": self.secondary_color,
            "receipt_message": self.receipt_message,
            "opening_hours": self.opening_hours,
            "website": self.website,
            "instagram": self.instagram,
            "facebook": self.facebook,
            "whatsapp": self.whatsapp,
            "updated_at": to_utc_z(self.updated_at),
        }
