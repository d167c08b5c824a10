from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class SystemSetting(db.Model):
    """
    Platform-wide key/value settings (maintenance mode, announcement, trial length).

    WHY: Stored as strings so admins can add keys without a migration; the
    known keys are typed in system_service.
    """
    __tablename__ = "system_settings"

    key = db.Column(db.String(64), primary_key=True)
    value = db.Column(db.Text, nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())


class ActivityLog(db.Model):
    """
    Append-only audit trail of security-relevant and admin actions.

    WHY: Written best-effort. A failure to log never fails the request that
    triggered it.
    """
    __tablename__ = "activity_logs"
    __table_args__ = (
        db.Index("ix_activity_logs_action_created", "action", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, nullable=True, index=True)
    principal_kind = db.Column(db.String(16), nullable=True)
    principal_id = db.Column(db.Integer, nullable=True)

    action = db.Column(db.String(64), nullable=False)
    resource = db.Column(db.String(255), nullable=True)
    details = db.Column(db.JSON, nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "principal_kind": self.principal_kind,
            "principal_id": self.principal_id,
            "action": self.action,
            "resource": self.resource,
            "details": self.details,
            "ip_address": self.ip_address,
            "created_at": to_utc_z(self.created_at),
        }


NOTIFICATION_KINDS = ("info", "warning", "success", "error")


class SystemNotification(db.Model):
    """
    Platform-wide message broadcast by an administrator to every account.

    Only active notifications are shown; deleting one removes it for
    everybody, dismissing one hides it for a single account.
    """
    __tablename__ = "system_notifications"
    __table_args__ = (
        db.CheckConstraint(
            "kind IN ('info', 'warning', 'success', 'error')",
            name="ck_system_notifications_kind",
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(128), nullable=False)
    message = db.Column(db.Text, nullable=False)
    kind = db.Column(db.String(16), nullable=False, default="info")
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_by = db.Column(db.Integer, db.ForeignKey("owners.id", ondelete="SET NULL"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    dismissals = db.relationship(
        "NotificationDismissal", backref="notification", cascade="all, delete-orphan", passive_deletes=True
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "message": self.message,
            "kind": self.kind,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class NotificationDismissal(db.Model):
    """One account (owner or employee) has hidden one notification."""
    __tablename__ = "notification_dismissals"
    __table_args__ = (
        db.UniqueConstraint(
            "notification_id", "principal_kind", "principal_id", name="uq_notification_dismissals_principal"
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    notification_id = db.Column(
        db.Integer, db.ForeignKey("system_notifications.id", ondelete="CASCADE"), nullable=False, index=True
    )
    principal_kind = db.Column(db.String(16), nullable=False)
    principal_id = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
