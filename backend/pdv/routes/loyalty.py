# Overview: Flask API routes for the loyalty program; parses input and returns JSON responses.

"""
Loyalty routes.

Configuration, reward catalog, per-client balances, manual point changes,
and reward redemption.

MULTI-TENANT: Clients and rewards are resolved in the caller's tenant;
foreign ids answer 404.

SECURITY: Only the owner may change the program configuration.
"""

from flask import Blueprint, g, request

from ..decorators import require_active_account, require_auth, require_owner
from ..errors import ValidationError
from ..extensions import db
from ..services import loyalty_service
from ..validation import require_json_object


loyalty_bp = Blueprint("loyalty", __name__, url_prefix="/api/loyalty")


@loyalty_bp.get("/config")
@require_auth
def get_config_route():
    return loyalty_service.get_config(db.session, g.tenant_id).to_dict()


@loyalty_bp.put("/config")
@require_auth
@require_owner
@require_active_account
def update_config_route():
    payload = require_json_object(request.get_json(silent=True))
    return loyalty_service.update_config(db.session, g.tenant_id, payload).to_dict()


@loyalty_bp.get("/rewards")
@require_auth
def list_rewards_route():
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    rewards = loyalty_service.list_rewards(db.session, g.tenant_id, include_inactive=include_inactive)
    return {"items": [r.to_dict() for r in rewards], "count": len(rewards)}


@loyalty_bp.post("/rewards")
@require_auth
@require_active_account
def create_reward_route():
    payload = require_json_object(request.get_json(silent=True))
    return loyalty_service.create_reward(db.session, g.tenant_id, payload).to_dict(), 201


@loyalty_bp.put("/rewards/<int:reward_id>")
@require_auth
@require_active_account
def update_reward_route(reward_id: int):
    payload = require_json_object(request.get_json(silent=True))
    return loyalty_service.update_reward(db.session, g.tenant_id, reward_id, payload).to_dict()


@loyalty_bp.delete("/rewards/<int:reward_id>")
@require_auth
def delete_reward_route(reward_id: int):
    """Delete a reward; one already redeemed is deactivated instead."""
    deleted = loyalty_service.delete_reward(db.session, g.tenant_id, reward_id)
    return {"ok": True, "deleted": deleted, "deactivated": not deleted}


@loyalty_bp.get("/customers")
@require_auth
def list_customers_route():
    items = loyalty_service.list_customers(db.session, g.tenant_id)
    return {"items": items, "count": len(items)}


@loyalty_bp.get("/customers/<int:client_id>")
@require_auth
def get_customer_route(client_id: int):
    return loyalty_service.get_customer(db.session, g.tenant_id, client_id)


@loyalty_bp.post("/customers/<int:client_id>/points")
@require_auth
@require_active_account
def change_points_route(client_id: int):
    """
    Apply a manual points change.

    Body: {kind: earn|redeem|expire|adjust, points: int, description?,
           sale_id?, service_order_id?}
    Returns 400 with {available, required} when a debit exceeds the balance.
    """
    data = require_json_object(request.get_json(silent=True))
    if "kind" not in data or "points" not in data:
        raise ValidationError("kind and points are required")

    account, entry = loyalty_service.apply_points_change(
        db.session,
        tenant_id=g.tenant_id,
        client_id=client_id,
        kind=data["kind"],
        points=data["points"],
        description=data.get("description"),
        sale_id=data.get("sale_id"),
        service_order_id=data.get("service_order_id"),
    )
    return {"account": account.to_dict(), "entry": entry.to_dict()}, 201


@loyalty_bp.post("/customers/<int:client_id>/redeem")
@require_auth
@require_active_account
def redeem_reward_route(client_id: int):
    """Body: {reward_id}."""
    data = require_json_object(request.get_json(silent=True))
    if data.get("reward_id") is None:
        raise ValidationError("reward_id is required")

    account, entry, reward = loyalty_service.redeem_reward(
        db.session,
        tenant_id=g.tenant_id,
        client_id=client_id,
        reward_id=data["reward_id"],
    )
    return {
        "message": f"Reward redeemed: {reward.name}",
        "account": account.to_dict(),
        "entry": entry.to_dict(),
        "reward": reward.to_dict(),
    }, 201


@loyalty_bp.get("/summary")
@require_auth
def summary_route():
    """Point totals per entry kind and tier distribution."""
    return loyalty_service.summarize_ledger(db.session, g.tenant_id)
