from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


LOYALTY_TIERS = ("bronze", "silver", "gold", "diamond")
LOYALTY_ENTRY_KINDS = ("earn", "redeem", "expire", "adjust")
REWARD_KINDS = ("percent_discount", "fixed_discount", "product", "service")


class LoyaltyConfig(db.Model):
    """
    Per-tenant loyalty program settings.

    WHY: Created lazily with defaults the first time a tenant reads it. While
    inactive, sales do not accrue points automatically (manual ledger
    operations still work).
    """
    __tablename__ = "loyalty_configs"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", name="uq_loyalty_configs_tenant"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("owners.id"), nullable=False)

    is_active = db.Column(db.Boolean, nullable=False, default=False)
    points_per_currency_unit = db.Column(db.Integer, nullable=False, default=1)
    minimum_redemption = db.Column(db.Integer, nullable=False, default=100)
    points_validity_days = db.Column(db.Integer, nullable=False, default=365)
    birthday_bonus = db.Column(db.Integer, nullable=False, default=0)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "tenant_id": self.tenant_id,
            "is_active": self.is_active,
            "points_per_currency_unit": self.points_per_currency_unit,
            "minimum_redemption": self.minimum_redemption,
            "points_validity_days": self.points_validity_days,
            "birthday_bonus": self.birthday_bonus,
        }


class LoyaltyAccount(db.Model):
    """
    Points balance for one client of one tenant.

    WHY: Two monotonically increasing counters instead of a mutable balance.
    points_available is derived (earned - redeemed), and the CHECK constraint
    guarantees it never goes negative even under concurrent redemptions.

    tier is recomputed from points_earned after every mutation, so
    redemptions never demote a client.
    """
    __tablename__ = "loyalty_accounts"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "client_id", name="uq_loyalty_accounts_tenant_client"),
        db.CheckConstraint("points_earned >= 0", name="ck_loyalty_accounts_earned_non_negative"),
        db.CheckConstraint("points_redeemed >= 0", name="ck_loyalty_accounts_redeemed_non_negative"),
        db.CheckConstraint("points_redeemed <= points_earned", name="ck_loyalty_accounts_redeemed_le_earned"),
        db.CheckConstraint(
            "tier IN ('bronze', 'silver', 'gold', 'diamond')",
            name="ck_loyalty_accounts_tier",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("owners.id"), nullable=False, index=True)
    client_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=False, index=True)

    points_earned = db.Column(db.Integer, nullable=False, default=0)
    points_redeemed = db.Column(db.Integer, nullable=False, default=0)
    tier = db.Column(db.String(16), nullable=False, default="bronze")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    client = db.relationship("Client", backref=db.backref("loyalty_account", uselist=False, lazy=True))

    @property
    def points_available(self) -> int:
        return (self.points_earned or 0) - (self.points_redeemed or 0)

    def to_dict(self) -> dict:
        return {
            "client_id": self.client_id,
            "points_earned": self.points_earned,
            "points_redeemed": self.points_redeemed,
            "points_available": self.points_available,
            "tier": self.tier,
            "updated_at": to_utc_z(self.updated_at),
        }


class LoyaltyHistoryEntry(db.Model):
    """
    Append-only loyalty ledger.

    WHY: Every balance change leaves exactly one entry with the signed delta
    actually applied (+ for earn/adjust, - for redeem/expire). Entries are
    never updated or deleted, so the log is an audit trail of the account.
    """
    __tablename__ = "loyalty_history"
    __table_args__ = (
        db.CheckConstraint(
            "kind IN ('earn', 'redeem', 'expire', 'adjust')",
            name="ck_loyalty_history_kind",
        ),
        db.Index("ix_loyalty_history_tenant_client_created", "tenant_id", "client_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("owners.id"), nullable=False, index=True)
    client_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=False, index=True)

    kind = db.Column(db.String(16), nullable=False)
    points = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255), nullable=True)

    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True)
    service_order_id = db.Column(db.Integer, db.ForeignKey("service_orders.id"), nullable=True)
    reward_id = db.Column(db.Integer, db.ForeignKey("rewards.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    reward = db.relationship("Reward")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "client_id": self.client_id,
            "kind": self.kind,
            "points": self.points,
            "description": self.description,
            "sale_id": self.sale_id,
            "service_order_id": self.service_order_id,
            "reward_id": self.reward_id,
            "reward_name": self.reward.name if self.reward else None,
            "created_at": to_utc_z(self.created_at),
        }


class Reward(db.Model):
    """
    Reward catalog entry redeemable for points.

    WHY: Rewards referenced by history are deactivated rather than deleted
    so the ledger keeps pointing at a real row.
    """
    __tablename__ = "rewards"
    __table_args__ = (
        db.CheckConstraint("points_required > 0", name="ck_rewards_points_required_positive"),
        db.CheckConstraint(
            "kind IN ('percent_discount', 'fixed_discount', 'product', 'service')",
            name="ck_rewards_kind",
        ),
        db.Index("ix_rewards_tenant_active", "tenant_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("owners.id"), nullable=False, index=True)

    name = db.Column(db.String(128), nullable=False)
    description = db.Column(db.String(255), nullable=True)
    points_required = db.Column(db.Integer, nullable=False)
    kind = db.Column(db.String(32), nullable=False)
    # Percent (0-100) for percent_discount, cents for fixed_discount
    discount_value = db.Column(db.Integer, nullable=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "points_required": self.points_required,
            "kind": self.kind,
            "discount_value": self.discount_value,
            "product_id": self.product_id,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
