# Overview: Platform-wide settings and account administration.

"""
System Service

WHY: A handful of platform switches (maintenance mode, the announcement
banner, the trial length for new accounts) are edited by administrators at
runtime. They live in the system_settings key/value table; this module
types them on the way in and out.
"""

from __future__ import annotations

from datetime import datetime, time, timedelta

from flask import current_app, has_app_context

from ..errors import NotFoundError, ValidationError
from ..models import Owner, SystemSetting
from ..models.tenancy import OWNER_PAYMENT_STATUSES
from ..validation import coerce_int
from .principals import OWNER
from .session_service import revoke_principal_sessions


MAINTENANCE_MODE = "maintenance_mode"
SYSTEM_ANNOUNCEMENT = "system_announcement"
TRIAL_PERIOD_DAYS = "trial_period_days"

DEFAULT_MAINTENANCE_MESSAGE = "System under maintenance"


def _default_trial_days() -> int:
    if has_app_context():
        return int(current_app.config.get("TRIAL_PERIOD_DAYS", 14))
    return 14


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "1", "yes", "on"):
        return True
    if isinstance(value, str) and value.strip().lower() in ("false", "0", "no", "off", ""):
        return False
    raise ValidationError("maintenance_mode must be a boolean")


def get_settings(session) -> dict:
    raw = {row.key: row.value for row in session.query(SystemSetting).all()}
    trial_days = raw.get(TRIAL_PERIOD_DAYS)
    return {
        MAINTENANCE_MODE: raw.get(MAINTENANCE_MODE) == "true",
        SYSTEM_ANNOUNCEMENT: raw.get(SYSTEM_ANNOUNCEMENT) or None,
        TRIAL_PERIOD_DAYS: int(trial_days) if trial_days else _default_trial_days(),
    }


def update_settings(session, payload: dict) -> dict:
    if not isinstance(payload, dict) or not payload:
        raise ValidationError("No fields to update")

    unknown = set(payload) - {MAINTENANCE_MODE, SYSTEM_ANNOUNCEMENT, TRIAL_PERIOD_DAYS}
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")

    values: dict[str, str | None] = {}
    if MAINTENANCE_MODE in payload:
        values[MAINTENANCE_MODE] = "true" if _parse_bool(payload[MAINTENANCE_MODE]) else "false"
    if SYSTEM_ANNOUNCEMENT in payload:
        announcement = payload[SYSTEM_ANNOUNCEMENT]
        if announcement is not None and not isinstance(announcement, str):
            raise ValidationError("system_announcement must be a string")
        values[SYSTEM_ANNOUNCEMENT] = announcement.strip() if announcement else None
    if TRIAL_PERIOD_DAYS in payload:
        days = coerce_int(payload[TRIAL_PERIOD_DAYS], TRIAL_PERIOD_DAYS)
        if days < 0:
            raise ValidationError("trial_period_days must be >= 0")
        values[TRIAL_PERIOD_DAYS] = str(days)

    for key, value in values.items():
        row = session.get(SystemSetting, key)
        if row is None:
            session.add(SystemSetting(key=key, value=value))
        else:
            row.value = value
    session.commit()
    return get_settings(session)


def is_maintenance_mode(session) -> bool:
    row = session.get(SystemSetting, MAINTENANCE_MODE)
    return row is not None and row.value == "true"


def system_status(session) -> dict:
    settings = get_settings(session)
    maintenance = settings[MAINTENANCE_MODE]
    return {
        "maintenance": maintenance,
        "message": (settings[SYSTEM_ANNOUNCEMENT] or DEFAULT_MAINTENANCE_MESSAGE) if maintenance else None,
        "announcement": settings[SYSTEM_ANNOUNCEMENT],
        "status": "maintenance" if maintenance else "online",
    }


def trial_period_days(session) -> int:
    return get_settings(session)[TRIAL_PERIOD_DAYS]


def list_owners(session, *, payment_status: str | None = None) -> list[Owner]:
    query = session.query(Owner)
    if payment_status:
        query = query.filter(Owner.payment_status == payment_status)
    return query.order_by(Owner.created_at.desc(), Owner.id.desc()).all()


def set_payment_status(session, owner_ids, payment_status: str) -> int:
    """
    Bulk-update account payment status.

    Blocking an account (pending/cancelled) also revokes its sessions.
    """
    if payment_status not in OWNER_PAYMENT_STATUSES:
        raise ValidationError(f"payment_status must be one of: {', '.join(OWNER_PAYMENT_STATUSES)}")
    if not isinstance(owner_ids, list) or not owner_ids:
        raise ValidationError("owner_ids must be a non-empty list")
    ids = [coerce_int(i, "owner_ids") for i in owner_ids]

    owners = session.query(Owner).filter(Owner.id.in_(ids)).all()
    for owner in owners:
        owner.payment_status = payment_status
    session.commit()

    if payment_status in ("pending", "cancelled"):
        for owner in owners:
            revoke_principal_sessions(session, OWNER, owner.id, f"Account {payment_status}")
    return len(owners)


def get_owner(session, owner_id: int) -> Owner:
    owner = session.get(Owner, owner_id)
    if owner is None:
        raise NotFoundError("Owner not found", {"id": owner_id})
    return owner


def recent_registrations(session, *, start=None, end=None, limit: int = 20) -> list[Owner]:
    """
    Newest owner accounts, optionally limited to a signup date range.

    start and end are dates; both bounds are inclusive.
    """
    query = session.query(Owner)
    if start is not None:
        query = query.filter(Owner.created_at >= datetime.combine(start, time.min))
    if end is not None:
        query = query.filter(Owner.created_at < datetime.combine(end + timedelta(days=1), time.min))
    return query.order_by(Owner.created_at.desc(), Owner.id.desc()).limit(limit).all()
