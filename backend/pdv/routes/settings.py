# Overview: Flask API routes for per-tenant store settings.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_owner
from ..extensions import db
from ..services import settings_service
from ..validation import require_json_object


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_auth
def get_settings_route():
    return settings_service.get_store_settings(db.session, g.tenant_id)


@settings_bp.put("")
@require_auth
@require_owner
def update_settings_route():
    payload = require_json_object(request.get_json(silent=True))
    return settings_service.update_store_settings(db.session, g.tenant_id, payload)
