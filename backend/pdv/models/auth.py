from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class SessionToken(db.Model):
    """
    Authentication session tokens with tenant context.

    WHY: Tokens are hashed (SHA-256) before storage, so a leaked database
    does not leak usable credentials.

    MULTI-TENANT: principal_kind/principal_id identify who logged in and
    tenant_id is captured at creation. For owners tenant_id == principal_id;
    for employees it is the employing owner. The tenant never changes for
    the lifetime of the session.
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.CheckConstraint("principal_kind IN ('owner', 'employee')", name="ck_session_tokens_kind"),
        db.Index("ix_session_tokens_principal", "principal_kind", "principal_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    principal_kind = db.Column(db.String(16), nullable=False)
    principal_id = db.Column(db.Integer, nullable=False)
    tenant_id = db.Column(db.Integer, db.ForeignKey("owners.id"), nullable=False, index=True)

    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)

    user_agent = db.Column(db.String(255), nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(128), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "principal_kind": self.principal_kind,
            "principal_id": self.principal_id,
            "tenant_id": self.tenant_id,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
        }
