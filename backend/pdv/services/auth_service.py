# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every action must be attributable. Uses bcrypt for secure password
hashing and validates password strength.

MULTI-TENANT: Registering an owner creates a new tenant. Employees belong to
exactly one owner and authenticate against their own table.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Session tokens managed separately (see session_service.py)
- Owner accounts past their trial, or marked pending/cancelled, are blocked
  from writes (and their employees from logging in)
"""

from __future__ import annotations

import math
import re
from datetime import timedelta

import bcrypt

from ..errors import ConstraintViolationError, ForbiddenError, ValidationError
from ..models import Employee, Owner
from ..time_utils import to_utc_z, utcnow


BLOCKED_PAYMENT_STATUSES = ("pending", "cancelled")


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str):
        raise PasswordValidationError("Password must be a string")

    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str | None) -> bool:
    """
    Verify password against bcrypt hash.

    Returns False for a missing hash or a malformed one instead of raising,
    so every failure looks the same to the caller.
    """
    if not password_hash or not isinstance(password, str):
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def _normalize_email(email) -> str:
    if not isinstance(email, str) or "@" not in email:
        raise ValidationError("A valid email is required")
    return email.strip().lower()


def email_in_use(session, email: str) -> bool:
    return (
        session.query(Owner.id).filter(Owner.email == email).first() is not None
        or session.query(Employee.id).filter(Employee.email == email).first() is not None
    )


def register_owner(
    session,
    *,
    name: str,
    email: str,
    password: str,
    phone: str | None = None,
    address: str | None = None,
    trial_days: int = 14,
) -> Owner:
    """
    Create a new owner account (a new tenant) on a free trial.

    Raises:
        ValidationError / PasswordValidationError: bad input
        ConstraintViolationError: email already registered
    """
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("name is required")
    email = _normalize_email(email)

    if email_in_use(session, email):
        raise ConstraintViolationError("Email already registered")

    owner = Owner(
        name=name.strip(),
        email=email,
        password_hash=hash_password(password),
        phone=phone,
        address=address,
        payment_status="trial",
        trial_ends_at=utcnow() + timedelta(days=trial_days),
        is_admin=False,
    )
    session.add(owner)
    session.commit()
    return owner


def authenticate_owner(session, email: str, password: str) -> Owner | None:
    """
    Authenticate an owner by email and password.

    Returns Owner if credentials valid, None otherwise.
    Updates last_login_at on success.
    """
    if not isinstance(email, str):
        return None
    owner = session.query(Owner).filter(Owner.email == email.strip().lower()).first()
    if not owner:
        return None

    if verify_password(password, owner.password_hash):
        owner.last_login_at = utcnow()
        session.commit()
        return owner

    return None


def authenticate_employee(session, email: str, password: str) -> Employee | None:
    """
    Authenticate an active employee by email and password.

    SECURITY: Employees whose employer account is blocked cannot log in
    (ForbiddenError), regardless of their own status.
    """
    if not isinstance(email, str):
        return None
    employee = session.query(Employee).filter(
        Employee.email == email.strip().lower(),
        Employee.is_active.is_(True),
    ).first()

    if not employee or not verify_password(password, employee.password_hash):
        return None

    if employee.owner.payment_status in BLOCKED_PAYMENT_STATUSES:
        raise ForbiddenError("Company account is blocked. Contact the administrator.")

    employee.last_access_at = utcnow()
    session.commit()
    return employee


def trial_status(owner: Owner, now=None) -> dict:
    now = now or utcnow()
    days_remaining = None
    is_expired = False
    if owner.payment_status == "trial" and owner.trial_ends_at is not None:
        remaining = owner.trial_ends_at - now
        is_expired = remaining.total_seconds() <= 0
        days_remaining = max(0, math.ceil(remaining.total_seconds() / 86400))
    return {
        "payment_status": owner.payment_status,
        "trial_ends_at": to_utc_z(owner.trial_ends_at),
        "days_remaining": days_remaining,
        "is_expired": is_expired,
    }


def ensure_account_active(session, owner: Owner) -> None:
    """
    Block writes for accounts whose trial lapsed or whose payment is pending/cancelled.

    An expired trial is moved to 'pending' the first time it is noticed.
    Administrators are never blocked.
    """
    if owner.is_admin:
        return

    if owner.payment_status == "trial" and owner.trial_ends_at is not None and owner.trial_ends_at <= utcnow():
        owner.payment_status = "pending"
        session.commit()
        raise ForbiddenError(
            "Trial period expired. Please subscribe to continue.",
            {"trial_expired": True},
        )

    if owner.payment_status in BLOCKED_PAYMENT_STATUSES:
        raise ForbiddenError(
            "Account blocked. Contact the administrator.",
            {"payment_status": owner.payment_status},
        )
