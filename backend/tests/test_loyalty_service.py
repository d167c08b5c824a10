# Overview: Pytest coverage for the loyalty ledger.

"""
Loyalty Ledger Tests

Verifies:
1. Tier thresholds are derived from lifetime earned points
2. Debits never exceed the available balance
3. Redemptions and expirations never lower the tier
4. A failed operation writes no balance change and no history entry
5. Reward redemption checks catalog ownership and availability
"""

import pytest

from pdv.errors import InsufficientPointsError, NotFoundError, ValidationError
from pdv.models import LoyaltyAccount, LoyaltyHistoryEntry, Reward, Sale
from pdv.services import loyalty_service, service_order_service
from pdv.services.loyalty_service import apply_points_change, redeem_reward, tier_for_points

from conftest import make_client


def _earn(session, tenant_id, client_id, points):
    return apply_points_change(
        session, tenant_id=tenant_id, client_id=client_id, kind="earn", points=points
    )


def _reward(session, tenant_id, *, points_required, name="Free coffee", is_active=True):
    reward = Reward(
        tenant_id=tenant_id,
        name=name,
        points_required=points_required,
        kind="product",
        is_active=is_active,
    )
    session.add(reward)
    session.commit()
    return reward


class TestTierForPoints:
    """Tier thresholds."""

    @pytest.mark.parametrize(
        "points,tier",
        [
            (0, "bronze"),
            (999, "bronze"),
            (1000, "silver"),
            (4999, "silver"),
            (5000, "gold"),
            (9999, "gold"),
            (10000, "diamond"),
            (250000, "diamond"),
        ],
    )
    def test_thresholds(self, points, tier):
        assert tier_for_points(points) == tier


class TestApplyPointsChange:
    """Earn, redeem, expire, and adjust on the ledger."""

    def test_earn_creates_account(self, db_session, owner_a, client_a):
        account, entry = _earn(db_session, owner_a.id, client_a.id, 1200)

        assert account.points_earned == 1200
        assert account.points_redeemed == 0
        assert account.points_available == 1200
        assert account.tier == "silver"
        assert entry.kind == "earn"
        assert entry.points == 1200

    def test_redeem_more_than_available_fails(self, db_session, owner_a, client_a):
        """earn 1200, redeem 1300: InsufficientPoints and nothing changes."""
        _earn(db_session, owner_a.id, client_a.id, 1200)

        with pytest.raises(InsufficientPointsError) as exc_info:
            apply_points_change(
                db_session, tenant_id=owner_a.id, client_id=client_a.id, kind="redeem", points=1300
            )

        assert exc_info.value.available == 1200
        assert exc_info.value.required == 1300
        account = db_session.query(LoyaltyAccount).filter_by(client_id=client_a.id).one()
        assert account.points_redeemed == 0
        assert db_session.query(LoyaltyHistoryEntry).count() == 1

    def test_redeem_within_balance(self, db_session, owner_a, client_a):
        """earn 1200, redeem 1000: available 200, tier stays silver."""
        _earn(db_session, owner_a.id, client_a.id, 1200)

        account, entry = apply_points_change(
            db_session, tenant_id=owner_a.id, client_id=client_a.id, kind="redeem", points=1000
        )

        assert account.points_redeemed == 1000
        assert account.points_available == 200
        assert account.tier == "silver"
        assert entry.points == -1000

    def test_expire_is_recorded_distinctly(self, db_session, owner_a, client_a):
        _earn(db_session, owner_a.id, client_a.id, 500)

        account, entry = apply_points_change(
            db_session, tenant_id=owner_a.id, client_id=client_a.id, kind="expire", points=300
        )

        assert entry.kind == "expire"
        assert entry.points == -300
        assert account.points_available == 200

    def test_adjust_credits_earned(self, db_session, owner_a, client_a):
        account, entry = apply_points_change(
            db_session, tenant_id=owner_a.id, client_id=client_a.id, kind="adjust", points=-150
        )
        # Magnitude is what counts; adjustments are credits
        assert account.points_earned == 150
        assert entry.points == 150

    def test_tier_never_drops(self, db_session, owner_a, client_a):
        _earn(db_session, owner_a.id, client_a.id, 6000)
        account, _ = apply_points_change(
            db_session, tenant_id=owner_a.id, client_id=client_a.id, kind="redeem", points=5500
        )
        assert account.tier == "gold"

        account, _ = apply_points_change(
            db_session, tenant_id=owner_a.id, client_id=client_a.id, kind="expire", points=500
        )
        assert account.points_available == 0
        assert account.tier == "gold"

    def test_tier_promotes_across_several_earns(self, db_session, owner_a, client_a):
        for _ in range(4):
            account, _ = _earn(db_session, owner_a.id, client_a.id, 2500)
        assert account.points_earned == 10000
        assert account.tier == "diamond"

    def test_redeem_without_account_fails(self, db_session, owner_a, client_a):
        with pytest.raises(InsufficientPointsError) as exc_info:
            apply_points_change(
                db_session, tenant_id=owner_a.id, client_id=client_a.id, kind="redeem", points=1
            )
        assert exc_info.value.available == 0
        assert db_session.query(LoyaltyAccount).count() == 0

    @pytest.mark.parametrize("kind,points", [("bonus", 10), ("earn", 0), ("earn", 1.5), ("earn", "abc")])
    def test_invalid_input(self, db_session, owner_a, client_a, kind, points):
        with pytest.raises(ValidationError):
            apply_points_change(
                db_session, tenant_id=owner_a.id, client_id=client_a.id, kind=kind, points=points
            )
        assert db_session.query(LoyaltyHistoryEntry).count() == 0

    def test_foreign_client_not_found(self, db_session, owner_b, client_a):
        with pytest.raises(NotFoundError):
            _earn(db_session, owner_b.id, client_a.id, 100)
        assert db_session.query(LoyaltyAccount).count() == 0


class TestRelatedRecords:
    """Sale, service order, and reward ids attached to history entries."""

    def _sale(self, session, tenant_id):
        sale = Sale(tenant_id=tenant_id, total_cents=1000, discount_cents=0, line_items=[])
        session.add(sale)
        session.commit()
        return sale

    def test_own_sale_and_order_are_recorded(self, db_session, owner_a, client_a):
        sale = self._sale(db_session, owner_a.id)
        order = service_order_service.create_order(db_session, owner_a.id, {
            "equipment": "Printer", "reported_defect": "Paper jam",
        })

        _, entry = apply_points_change(
            db_session, tenant_id=owner_a.id, client_id=client_a.id, kind="earn", points=50,
            sale_id=sale.id, service_order_id=order.id,
        )

        assert entry.sale_id == sale.id
        assert entry.service_order_id == order.id

    def test_foreign_sale_rejected(self, db_session, owner_a, owner_b, client_a):
        foreign_sale = self._sale(db_session, owner_b.id)

        with pytest.raises(NotFoundError):
            apply_points_change(
                db_session, tenant_id=owner_a.id, client_id=client_a.id, kind="earn", points=50,
                sale_id=foreign_sale.id,
            )

        assert db_session.query(LoyaltyHistoryEntry).count() == 0
        assert db_session.query(LoyaltyAccount).count() == 0

    def test_foreign_service_order_rejected(self, db_session, owner_a, owner_b, client_a):
        foreign_order = service_order_service.create_order(db_session, owner_b.id, {
            "equipment": "Tablet", "reported_defect": "No charge",
        })

        with pytest.raises(NotFoundError):
            apply_points_change(
                db_session, tenant_id=owner_a.id, client_id=client_a.id, kind="earn", points=50,
                service_order_id=foreign_order.id,
            )
        assert db_session.query(LoyaltyHistoryEntry).count() == 0

    def test_foreign_reward_rejected(self, db_session, owner_a, owner_b, client_a):
        foreign_reward = _reward(db_session, owner_b.id, points_required=10)
        _earn(db_session, owner_a.id, client_a.id, 100)

        with pytest.raises(NotFoundError):
            apply_points_change(
                db_session, tenant_id=owner_a.id, client_id=client_a.id, kind="redeem", points=10,
                reward_id=foreign_reward.id,
            )

        account = db_session.query(LoyaltyAccount).filter_by(client_id=client_a.id).one()
        assert account.points_redeemed == 0

    def test_missing_sale_rejected(self, db_session, owner_a, client_a):
        with pytest.raises(NotFoundError):
            apply_points_change(
                db_session, tenant_id=owner_a.id, client_id=client_a.id, kind="earn", points=50,
                sale_id=9999,
            )


class TestRedeemReward:
    """Spending points on catalog rewards."""

    def test_insufficient_points_for_reward(self, db_session, owner_a, client_a):
        """Reward needs 500, client has 200: no history entry is written."""
        _earn(db_session, owner_a.id, client_a.id, 200)
        reward = _reward(db_session, owner_a.id, points_required=500)

        with pytest.raises(InsufficientPointsError) as exc_info:
            redeem_reward(db_session, tenant_id=owner_a.id, client_id=client_a.id, reward_id=reward.id)

        assert exc_info.value.details == {"available": 200, "required": 500}
        assert db_session.query(LoyaltyHistoryEntry).filter_by(kind="redeem").count() == 0

    def test_successful_redemption(self, db_session, owner_a, client_a):
        _earn(db_session, owner_a.id, client_a.id, 800)
        reward = _reward(db_session, owner_a.id, points_required=500)

        account, entry, redeemed = redeem_reward(
            db_session, tenant_id=owner_a.id, client_id=client_a.id, reward_id=reward.id
        )

        assert redeemed.id == reward.id
        assert account.points_available == 300
        assert entry.kind == "redeem"
        assert entry.points == -500
        assert entry.reward_id == reward.id

    def test_redemption_keeps_tier(self, db_session, owner_a, client_a):
        _earn(db_session, owner_a.id, client_a.id, 5200)
        reward = _reward(db_session, owner_a.id, points_required=5000)

        account, _, _ = redeem_reward(
            db_session, tenant_id=owner_a.id, client_id=client_a.id, reward_id=reward.id
        )

        assert account.points_available == 200
        assert account.tier == "gold"
        assert db_session.query(LoyaltyAccount).one().tier == "gold"

    def test_inactive_reward_not_found(self, db_session, owner_a, client_a):
        _earn(db_session, owner_a.id, client_a.id, 800)
        reward = _reward(db_session, owner_a.id, points_required=100, is_active=False)

        with pytest.raises(NotFoundError):
            redeem_reward(db_session, tenant_id=owner_a.id, client_id=client_a.id, reward_id=reward.id)

    def test_foreign_reward_not_found(self, db_session, owner_a, owner_b, client_a):
        _earn(db_session, owner_a.id, client_a.id, 800)
        reward = _reward(db_session, owner_b.id, points_required=100)

        with pytest.raises(NotFoundError):
            redeem_reward(db_session, tenant_id=owner_a.id, client_id=client_a.id, reward_id=reward.id)
        account = db_session.query(LoyaltyAccount).filter_by(client_id=client_a.id).one()
        assert account.points_redeemed == 0


class TestRewardCatalog:
    """Reward create/delete rules."""

    def test_create_reward_validates_kind(self, db_session, owner_a):
        with pytest.raises(ValidationError):
            loyalty_service.create_reward(
                db_session, owner_a.id, {"name": "X", "points_required": 10, "kind": "cashback"}
            )

    def test_create_reward_requires_positive_points(self, db_session, owner_a):
        with pytest.raises(ValidationError):
            loyalty_service.create_reward(
                db_session, owner_a.id, {"name": "X", "points_required": 0, "kind": "service"}
            )

    def test_percent_discount_capped(self, db_session, owner_a):
        with pytest.raises(ValidationError):
            loyalty_service.create_reward(
                db_session, owner_a.id,
                {"name": "Half off", "points_required": 100, "kind": "percent_discount", "discount_value": 150},
            )

    def test_delete_unreferenced_reward(self, db_session, owner_a):
        reward = _reward(db_session, owner_a.id, points_required=100)
        assert loyalty_service.delete_reward(db_session, owner_a.id, reward.id) is True
        assert db_session.get(Reward, reward.id) is None

    def test_delete_referenced_reward_deactivates(self, db_session, owner_a, client_a):
        _earn(db_session, owner_a.id, client_a.id, 500)
        reward = _reward(db_session, owner_a.id, points_required=100)
        redeem_reward(db_session, tenant_id=owner_a.id, client_id=client_a.id, reward_id=reward.id)

        assert loyalty_service.delete_reward(db_session, owner_a.id, reward.id) is False
        assert db_session.get(Reward, reward.id).is_active is False


class TestLedgerReads:
    """Customer listing and ledger summary."""

    def test_list_customers_includes_clients_without_account(self, db_session, owner_a, client_a):
        other = make_client(db_session, owner_a.id, name="Zeca")
        _earn(db_session, owner_a.id, other.id, 300)

        rows = loyalty_service.list_customers(db_session, owner_a.id)

        assert [r["client_id"] for r in rows] == [other.id, client_a.id]
        assert rows[1]["points_available"] == 0
        assert rows[1]["tier"] == "bronze"

    def test_get_customer_history_newest_first(self, db_session, owner_a, client_a):
        _earn(db_session, owner_a.id, client_a.id, 300)
        apply_points_change(
            db_session, tenant_id=owner_a.id, client_id=client_a.id, kind="redeem", points=100
        )

        data = loyalty_service.get_customer(db_session, owner_a.id, client_a.id)

        assert data["points_available"] == 200
        assert [h["kind"] for h in data["history"]] == ["redeem", "earn"]

    def test_summary(self, db_session, owner_a, client_a):
        _earn(db_session, owner_a.id, client_a.id, 1500)
        apply_points_change(
            db_session, tenant_id=owner_a.id, client_id=client_a.id, kind="expire", points=200
        )

        summary = loyalty_service.summarize_ledger(db_session, owner_a.id)

        assert summary["by_kind"]["earn"] == {"entries": 1, "points": 1500}
        assert summary["by_kind"]["expire"] == {"entries": 1, "points": -200}
        assert summary["by_kind"]["redeem"] == {"entries": 0, "points": 0}
        assert summary["tiers"]["silver"] == 1
        assert summary["tiers"]["bronze"] == 0
