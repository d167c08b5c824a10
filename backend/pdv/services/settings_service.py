# Overview: Service-layer operations for per-tenant store settings.

from __future__ import annotations

import re

from ..errors import ValidationError
from ..models import StoreSettings
from ..validation import ModelValidationPolicy, apply_patch, validate_payload


COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")

STORE_SETTINGS_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "store_name", "tax_id", "phone", "email", "address", "logo_url",
        "primary_color", "secondary_color", "receipt_message", "opening_hours",
        "website", "instagram", "facebook", "whatsapp",
    }),
)

DEFAULTS = {
    "store_name": None,
    "tax_id": None,
    "phone": None,
    "email": None,
    "address": None,
    "logo_url": None,
    "primary_color": "#2563eb",
    "secondary_color": "#1e40af",
    "receipt_message": "Thank you for your purchase!",
    "opening_hours": None,
    "website": None,
    "instagram": None,
    "facebook": None,
    "whatsapp": None,
}


def get_store_settings(session, tenant_id: int) -> dict:
    """Saved settings, or the defaults when the tenant never saved any."""
    settings = session.query(StoreSettings).filter_by(tenant_id=tenant_id).first()
    if settings is None:
        return {"tenant_id": tenant_id, **DEFAULTS, "updated_at": None}
    return settings.to_dict()


def update_store_settings(session, tenant_id: int, payload: dict) -> dict:
    patch = validate_payload(model=StoreSettings, payload=payload, policy=STORE_SETTINGS_POLICY, partial=True)
    if not patch:
        raise ValidationError("No fields to update")

    for key in ("primary_color", "secondary_color"):
        if key in patch and not COLOR_RE.match(patch[key] or ""):
            raise ValidationError(f"{key} must be a hex color like #1a2b3c")

    settings = session.query(StoreSettings).filter_by(tenant_id=tenant_id).first()
    if settings is None:
        settings = StoreSettings(tenant_id=tenant_id)
        apply_patch(settings, {k: v for k, v in DEFAULTS.items() if v is not None})
        session.add(settings)

    apply_patch(settings, patch)
    session.commit()
    return settings.to_dict()
