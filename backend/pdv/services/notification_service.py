# Overview: Service-layer operations for platform notifications broadcast by administrators.

"""
Notification Service

WHY: Administrators need to reach every account at once, e.g. to announce
planned downtime. A notification is platform-wide, not
tenant-owned; accounts can hide one for themselves without affecting
anyone else.
"""

from __future__ import annotations

from sqlalchemy import select

from ..errors import NotFoundError, ValidationError
from ..models import NotificationDismissal, SystemNotification
from ..models.system import NOTIFICATION_KINDS


ACTIVE_LIMIT = 10
TITLE_MAX_LENGTH = 128


def broadcast(session, *, title, message, kind="info", created_by: int | None = None) -> SystemNotification:
    """
    Publish a notification to every account.

    Raises:
        ValidationError: blank title/message, over-long title, unknown kind
    """
    title = title.strip() if isinstance(title, str) else ""
    message = message.strip() if isinstance(message, str) else ""
    if not title or not message:
        raise ValidationError("title and message are required")
    if len(title) > TITLE_MAX_LENGTH:
        raise ValidationError(f"title must be at most {TITLE_MAX_LENGTH} characters")
    if kind not in NOTIFICATION_KINDS:
        raise ValidationError(f"kind must be one of: {', '.join(NOTIFICATION_KINDS)}")

    notification = SystemNotification(
        title=title,
        message=message,
        kind=kind,
        is_active=True,
        created_by=created_by,
    )
    session.add(notification)
    session.commit()
    return notification


def list_active(session, principal=None, *, limit: int = ACTIVE_LIMIT) -> list[SystemNotification]:
    """Newest active notifications, minus the ones `principal` dismissed."""
    query = session.query(SystemNotification).filter(SystemNotification.is_active.is_(True))

    if principal is not None:
        dismissed = (
            select(NotificationDismissal.notification_id)
            .where(
                NotificationDismissal.principal_kind == principal.kind,
                NotificationDismissal.principal_id == principal.id,
            )
        )
        query = query.filter(SystemNotification.id.not_in(dismissed))

    return (
        query.order_by(SystemNotification.created_at.desc(), SystemNotification.id.desc())
        .limit(limit)
        .all()
    )


def list_all(session) -> list[SystemNotification]:
    return (
        session.query(SystemNotification)
        .order_by(SystemNotification.created_at.desc(), SystemNotification.id.desc())
        .all()
    )


def _get_or_404(session, notification_id: int) -> SystemNotification:
    notification = session.get(SystemNotification, notification_id)
    if notification is None:
        raise NotFoundError("Notification not found", {"id": notification_id})
    return notification


def dismiss(session, notification_id: int, principal) -> bool:
    """
    Hide a notification for one account.

    Returns False when it was already dismissed.
    """
    _get_or_404(session, notification_id)

    exists = (
        session.query(NotificationDismissal.id)
        .filter_by(notification_id=notification_id, principal_kind=principal.kind, principal_id=principal.id)
        .first()
    )
    if exists is not None:
        return False

    session.add(NotificationDismissal(
        notification_id=notification_id,
        principal_kind=principal.kind,
        principal_id=principal.id,
    ))
    session.commit()
    return True


def delete(session, notification_id: int) -> None:
    notification = _get_or_404(session, notification_id)
    session.delete(notification)
    session.commit()
