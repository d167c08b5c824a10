# Overview: Service-layer operations for the loyalty ledger; encapsulates business logic and database work.

"""
Loyalty Ledger Service

WHY: Clients accumulate points (from purchases or manual grants) and spend
them on rewards. Balances are two monotonically increasing counters on
LoyaltyAccount; every change appends one LoyaltyHistoryEntry.

INVARIANTS:
- points_redeemed <= points_earned after every operation (also a CHECK
  constraint, so concurrent redemptions cannot overdraw)
- tier is a pure function of points_earned, recomputed after every
  mutation; redeeming or expiring points never lowers the tier
- a failed operation writes nothing (no balance change, no history entry)

MULTI-TENANT: Every operation takes tenant_id and resolves the client (and
reward) through tenant_service.get_owned_or_404.
"""

from __future__ import annotations

from sqlalchemy import func

from ..errors import InsufficientPointsError, NotFoundError, ValidationError
from ..models import (
    Client, LoyaltyAccount, LoyaltyConfig, LoyaltyHistoryEntry, Product, Reward, Sale, ServiceOrder,
)
from ..models.loyalty import LOYALTY_ENTRY_KINDS, REWARD_KINDS
from ..validation import ModelValidationPolicy, apply_patch, coerce_int, validate_payload
from .concurrency import begin_write_transaction, lock_for_update
from .tenant_service import get_owned_or_404, get_optional_owned, scoped_query


# Checked top-down; the first threshold reached wins
TIER_THRESHOLDS = (
    ("diamond", 10000),
    ("gold", 5000),
    ("silver", 1000),
)
BASE_TIER = "bronze"

EARN = "earn"
REDEEM = "redeem"
EXPIRE = "expire"
ADJUST = "adjust"

CREDIT_KINDS = (EARN, ADJUST)
DEBIT_KINDS = (REDEEM, EXPIRE)

HISTORY_LIMIT = 50


CONFIG_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "is_active", "points_per_currency_unit", "minimum_redemption",
        "points_validity_days", "birthday_bonus",
    }),
    non_negative=frozenset({
        "points_per_currency_unit", "minimum_redemption",
        "points_validity_days", "birthday_bonus",
    }),
)

REWARD_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "name", "description", "points_required", "kind",
        "discount_value", "product_id", "is_active",
    }),
    required_on_create=frozenset({"name", "points_required", "kind"}),
    choices={"kind": REWARD_KINDS},
    non_negative=frozenset({"discount_value"}),
)


def tier_for_points(points_earned: int) -> str:
    """Map cumulative earned points to a tier."""
    for tier, threshold in TIER_THRESHOLDS:
        if points_earned >= threshold:
            return tier
    return BASE_TIER


def get_account(session, tenant_id: int, client_id: int) -> LoyaltyAccount | None:
    return session.query(LoyaltyAccount).filter_by(tenant_id=tenant_id, client_id=client_id).first()


def _get_or_create_account(session, tenant_id: int, client_id: int) -> LoyaltyAccount:
    account = lock_for_update(
        session.query(LoyaltyAccount).filter_by(tenant_id=tenant_id, client_id=client_id)
    ).first()
    if account is None:
        account = LoyaltyAccount(
            tenant_id=tenant_id,
            client_id=client_id,
            points_earned=0,
            points_redeemed=0,
            tier=BASE_TIER,
        )
        session.add(account)
        session.flush()
    return account


def apply_points_change(
    session,
    *,
    tenant_id: int,
    client_id: int,
    kind: str,
    points,
    description: str | None = None,
    sale_id: int | None = None,
    service_order_id: int | None = None,
    reward_id: int | None = None,
    commit: bool = True,
) -> tuple[LoyaltyAccount, LoyaltyHistoryEntry]:
    """
    Credit or debit a client's loyalty account and append a history entry.

    earn/adjust add abs(points) to points_earned; redeem/expire add
    abs(points) to points_redeemed after checking the available balance.
    The history entry stores the signed delta actually applied.
    Related sale, service order, and reward ids must belong to the same
    tenant as the client.

    commit=False lets a caller (e.g. record_sale) fold this into its own
    unit of work; the caller is then responsible for commit/rollback.

    Raises:
        ValidationError: unknown kind, non-integer or zero points
        NotFoundError: client or a related record missing or owned by another tenant
        InsufficientPointsError: debit larger than the available balance
    """
    if kind not in LOYALTY_ENTRY_KINDS:
        raise ValidationError(
            f"kind must be one of: {', '.join(LOYALTY_ENTRY_KINDS)}",
            {"kind": kind},
        )
    points = coerce_int(points, "points")
    if points == 0:
        raise ValidationError("points must be non-zero")
    magnitude = abs(points)
    if sale_id is not None:
        sale_id = coerce_int(sale_id, "sale_id")
    if service_order_id is not None:
        service_order_id = coerce_int(service_order_id, "service_order_id")
    if reward_id is not None:
        reward_id = coerce_int(reward_id, "reward_id")

    try:
        begin_write_transaction(session)
        get_owned_or_404(session, Client, client_id, tenant_id)
        get_optional_owned(session, Sale, sale_id, tenant_id)
        get_optional_owned(session, ServiceOrder, service_order_id, tenant_id)
        get_optional_owned(session, Reward, reward_id, tenant_id)

        account = _get_or_create_account(session, tenant_id, client_id)

        if kind in CREDIT_KINDS:
            account.points_earned += magnitude
            delta = magnitude
        else:
            available = account.points_available
            if magnitude > available:
                raise InsufficientPointsError(available=available, required=magnitude)
            account.points_redeemed += magnitude
            delta = -magnitude

        account.tier = tier_for_points(account.points_earned)

        entry = LoyaltyHistoryEntry(
            tenant_id=tenant_id,
            client_id=client_id,
            kind=kind,
            points=delta,
            description=description,
            sale_id=sale_id,
            service_order_id=service_order_id,
            reward_id=reward_id,
        )
        session.add(entry)
        session.flush()

        if commit:
            session.commit()
    except Exception:
        if commit:
            session.rollback()
        raise

    return account, entry


def redeem_reward(session, *, tenant_id: int, client_id: int, reward_id) -> tuple[LoyaltyAccount, LoyaltyHistoryEntry, Reward]:
    """
    Spend points on a catalog reward.

    The reward must belong to the tenant and be active. A client without a
    loyalty account has 0 available points.

    Raises:
        NotFoundError: client or reward missing/foreign, or reward inactive
        InsufficientPointsError: {available, required}
    """
    reward_id = coerce_int(reward_id, "reward_id")

    try:
        begin_write_transaction(session)
        get_owned_or_404(session, Client, client_id, tenant_id)

        reward = get_owned_or_404(session, Reward, reward_id, tenant_id)
        if not reward.is_active:
            raise NotFoundError("Reward not found or inactive", {"id": reward_id})

        account = lock_for_update(
            session.query(LoyaltyAccount).filter_by(tenant_id=tenant_id, client_id=client_id)
        ).first()
        available = account.points_available if account else 0
        if account is None or available < reward.points_required:
            raise InsufficientPointsError(available=available, required=reward.points_required)

        account.points_redeemed += reward.points_required

        entry = LoyaltyHistoryEntry(
            tenant_id=tenant_id,
            client_id=client_id,
            kind=REDEEM,
            points=-reward.points_required,
            description=f"Reward redeemed: {reward.name}",
            reward_id=reward.id,
        )
        session.add(entry)
        session.commit()
    except Exception:
        session.rollback()
        raise

    return account, entry, reward


def points_for_purchase(total_cents: int, config: LoyaltyConfig) -> int:
    """Points earned for a purchase: whole currency units times the configured rate."""
    return (total_cents * config.points_per_currency_unit) // 100


def find_config(session, tenant_id: int) -> LoyaltyConfig | None:
    return session.query(LoyaltyConfig).filter_by(tenant_id=tenant_id).first()


def get_config(session, tenant_id: int) -> LoyaltyConfig:
    """Return the tenant's loyalty config, creating it with defaults on first use."""
    config = find_config(session, tenant_id)
    if config is None:
        config = LoyaltyConfig(
            tenant_id=tenant_id,
            is_active=False,
            points_per_currency_unit=1,
            minimum_redemption=100,
            points_validity_days=365,
            birthday_bonus=0,
        )
        session.add(config)
        session.commit()
    return config


def update_config(session, tenant_id: int, payload: dict) -> LoyaltyConfig:
    patch = validate_payload(model=LoyaltyConfig, payload=payload, policy=CONFIG_POLICY, partial=True)
    if not patch:
        raise ValidationError("No fields to update")

    config = get_config(session, tenant_id)
    apply_patch(config, patch)
    session.commit()
    return config


def list_rewards(session, tenant_id: int, *, include_inactive: bool = False) -> list[Reward]:
    query = scoped_query(session, Reward, tenant_id)
    if not include_inactive:
        query = query.filter(Reward.is_active.is_(True))
    return query.order_by(Reward.points_required.asc(), Reward.id.asc()).all()


def _check_reward_rules(session, tenant_id: int, patch: dict) -> None:
    if "points_required" in patch and patch["points_required"] <= 0:
        raise ValidationError("points_required must be > 0")
    if patch.get("kind") == "percent_discount" and patch.get("discount_value") is not None:
        if patch["discount_value"] > 100:
            raise ValidationError("discount_value must be between 0 and 100 for percent_discount")
    if patch.get("product_id") is not None:
        get_optional_owned(session, Product, patch["product_id"], tenant_id)


def create_reward(session, tenant_id: int, payload: dict) -> Reward:
    patch = validate_payload(model=Reward, payload=payload, policy=REWARD_POLICY, partial=False)
    _check_reward_rules(session, tenant_id, patch)

    reward = Reward(tenant_id=tenant_id, is_active=True)
    apply_patch(reward, patch)
    session.add(reward)
    session.commit()
    return reward


def update_reward(session, tenant_id: int, reward_id: int, payload: dict) -> Reward:
    patch = validate_payload(model=Reward, payload=payload, policy=REWARD_POLICY, partial=True)
    if not patch:
        raise ValidationError("No fields to update")

    reward = get_owned_or_404(session, Reward, reward_id, tenant_id)
    _check_reward_rules(session, tenant_id, {"kind": reward.kind, **patch})
    apply_patch(reward, patch)
    session.commit()
    return reward


def delete_reward(session, tenant_id: int, reward_id: int) -> bool:
    """
    Remove a reward from the catalog.

    Returns True when the row was deleted, False when it was only
    deactivated because history entries reference it.
    """
    reward = get_owned_or_404(session, Reward, reward_id, tenant_id)

    referenced = session.query(LoyaltyHistoryEntry.id).filter_by(reward_id=reward.id).first() is not None
    if referenced:
        reward.is_active = False
        session.commit()
        return False

    session.delete(reward)
    session.commit()
    return True


def _customer_row(client: Client, account: LoyaltyAccount | None) -> dict:
    earned = account.points_earned if account else 0
    redeemed = account.points_redeemed if account else 0
    return {
        "client_id": client.id,
        "name": client.name,
        "email": client.email,
        "phone": client.phone,
        "points_earned": earned,
        "points_redeemed": redeemed,
        "points_available": earned - redeemed,
        "tier": account.tier if account else BASE_TIER,
    }


def list_customers(session, tenant_id: int) -> list[dict]:
    """All tenant clients with their balances, highest available points first."""
    available = (
        func.coalesce(LoyaltyAccount.points_earned, 0) - func.coalesce(LoyaltyAccount.points_redeemed, 0)
    )
    rows = (
        session.query(Client, LoyaltyAccount)
        .outerjoin(
            LoyaltyAccount,
            (LoyaltyAccount.client_id == Client.id) & (LoyaltyAccount.tenant_id == tenant_id),
        )
        .filter(Client.tenant_id == tenant_id)
        .order_by(available.desc(), Client.name.asc())
        .all()
    )
    return [_customer_row(client, account) for client, account in rows]


def get_customer(session, tenant_id: int, client_id: int) -> dict:
    """Balance plus the most recent history entries for one client."""
    client = get_owned_or_404(session, Client, client_id, tenant_id)
    account = get_account(session, tenant_id, client.id)

    history = (
        session.query(LoyaltyHistoryEntry)
        .filter_by(tenant_id=tenant_id, client_id=client.id)
        .order_by(LoyaltyHistoryEntry.created_at.desc(), LoyaltyHistoryEntry.id.desc())
        .limit(HISTORY_LIMIT)
        .all()
    )

    data = _customer_row(client, account)
    data["history"] = [entry.to_dict() for entry in history]
    return data


def summarize_ledger(session, tenant_id: int) -> dict:
    """Point totals per entry kind plus the tier distribution of accounts."""
    by_kind = (
        session.query(
            LoyaltyHistoryEntry.kind,
            func.count(LoyaltyHistoryEntry.id),
            func.coalesce(func.sum(LoyaltyHistoryEntry.points), 0),
        )
        .filter(LoyaltyHistoryEntry.tenant_id == tenant_id)
        .group_by(LoyaltyHistoryEntry.kind)
        .all()
    )
    tiers = (
        session.query(LoyaltyAccount.tier, func.count(LoyaltyAccount.id))
        .filter(LoyaltyAccount.tenant_id == tenant_id)
        .group_by(LoyaltyAccount.tier)
        .all()
    )

    kinds = {kind: {"entries": 0, "points": 0} for kind in LOYALTY_ENTRY_KINDS}
    for kind, count, points in by_kind:
        kinds[kind] = {"entries": int(count), "points": int(points)}

    tier_counts = {tier: 0 for tier in (BASE_TIER,) + tuple(t for t, _ in reversed(TIER_THRESHOLDS))}
    for tier, count in tiers:
        tier_counts[tier] = int(count)

    return {"by_kind": kinds, "tiers": tier_counts}
