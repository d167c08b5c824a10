# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Session Token Management Service with Multi-Tenant Support

WHY: Secure session management with automatic timeout and revocation.
Tokens are cryptographically secure, hashed in database, and time-limited.

MULTI-TENANT: Sessions capture the principal and its tenant at creation
time. This establishes the tenant context for every authenticated request
without repeated lookups.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Absolute timeout (24h for owners, 8h for employees by default)
- Idle timeout (2h by default)
- Revocable on logout or security events
- Tenant context is immutable for the session lifetime
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app, has_app_context

from ..models import Employee, Owner, SessionToken
from ..time_utils import utcnow
from .principals import EMPLOYEE, OWNER, Principal, principal_from_session


@dataclass
class SessionContext:
    """
    Complete session context returned by validate_session.

    MULTI-TENANT: principal is the tagged Owner/Employee principal and
    tenant_id comes from the immutable session record.
    """
    principal: Principal
    account: Owner | Employee
    owner: Owner
    session: SessionToken
    tenant_id: int


def _config_hours(key: str, default: int) -> timedelta:
    hours = current_app.config.get(key, default) if has_app_context() else default
    return timedelta(hours=hours)


def generate_token() -> str:
    """
    Generate cryptographically secure random token.

    Returns 64-character hex string (32 bytes of entropy).
    This is the plaintext token sent to client (never stored).
    """
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    WHY SHA-256 not bcrypt: Tokens are already high-entropy (unlike passwords).
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(
    session,
    account: Owner | Employee,
    *,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """
    Create new session token for an owner or employee.

    Returns (session_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.
    """
    if isinstance(account, Owner):
        kind, tenant_id = OWNER, account.id
        lifetime = _config_hours("SESSION_ABSOLUTE_HOURS", 24)
    elif isinstance(account, Employee):
        kind, tenant_id = EMPLOYEE, account.tenant_id
        lifetime = _config_hours("EMPLOYEE_SESSION_HOURS", 8)
    else:
        raise TypeError(f"Cannot create a session for {type(account).__name__}")

    plaintext_token = generate_token()
    now = utcnow()

    record = SessionToken(
        principal_kind=kind,
        principal_id=account.id,
        tenant_id=tenant_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + lifetime,
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False,
    )

    session.add(record)
    session.commit()

    return record, plaintext_token


def _revoke(session, record: SessionToken, reason: str) -> None:
    record.is_revoked = True
    record.revoked_at = utcnow()
    record.revoked_reason = reason
    session.commit()


def validate_session(session, token: str) -> SessionContext | None:
    """
    Validate session token and return SessionContext if valid.

    Returns None if:
    - Token is invalid, expired, or revoked
    - The session sat idle past the idle timeout (auto-revoked)
    - The employee behind the session was deactivated (auto-revoked)

    Updates last_used_at on successful validation (activity tracking).
    """
    now = utcnow()

    record = session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not record:
        return None

    if record.expires_at < now:
        return None

    if now - record.last_used_at > _config_hours("SESSION_IDLE_HOURS", 2):
        _revoke(session, record, "Idle timeout")
        return None

    owner = session.query(Owner).filter_by(id=record.tenant_id).first()
    if not owner:
        _revoke(session, record, "Tenant removed")
        return None

    if record.principal_kind == OWNER:
        account = owner
        principal = principal_from_session(OWNER, owner.id, owner.id, is_admin=owner.is_admin)
    else:
        account = session.query(Employee).filter_by(id=record.principal_id).first()
        if not account or not account.is_active or account.tenant_id != record.tenant_id:
            _revoke(session, record, "Employee deactivated")
            return None
        principal = principal_from_session(EMPLOYEE, account.id, record.tenant_id, role=account.role)

    record.last_used_at = now
    session.commit()

    return SessionContext(
        principal=principal,
        account=account,
        owner=owner,
        session=record,
        tenant_id=record.tenant_id,
    )


def revoke_session(session, token: str, reason: str = "User logout") -> bool:
    """
    Revoke session token.

    Returns True if session was revoked, False if not found.
    """
    record = session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not record:
        return False

    _revoke(session, record, reason)
    return True


def revoke_principal_sessions(session, kind: str, principal_id: int, reason: str) -> int:
    """Revoke every active session of one principal (password change, deactivation)."""
    now = utcnow()
    records = session.query(SessionToken).filter_by(
        principal_kind=kind,
        principal_id=principal_id,
        is_revoked=False,
    ).all()

    for record in records:
        record.is_revoked = True
        record.revoked_at = now
        record.revoked_reason = reason

    session.commit()
    return len(records)
