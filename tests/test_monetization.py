"""
Unit tests for purchase timing, SKU choice, refunds and LTV aggregation
"""

import pytest

from pltv_synth.events import Milestones
from pltv_synth.monetization import (
    MAX_REFUND_P,
    MonetizerFlags,
    PurchaseContext,
    Transaction,
    aggregate_ltv,
    pick_sku_by_context,
    purchase_context,
    purchase_schedule,
    refund_probability,
    sample_txn_amount,
)
from pltv_synth.rng import SeededRandom
from pltv_synth.utils import MS_PER_DAY, MS_PER_HOUR

NO_FLAGS = MonetizerFlags(late_monetizer=False, false_early_payer=False)


class TestAggregateLtv:
    """Test horizon windows, refunds and first purchase time"""

    def test_half_open_horizons(self):
        """Test a purchase exactly 7 days after install is not in D7"""
        txns = [
            Transaction(2 * MS_PER_HOUR, 5.0, "starter_pack", "google_play", False),
            Transaction(7 * MS_PER_DAY, 10.0, "gem_bundle", "google_play", False),
            Transaction(45 * MS_PER_DAY, 20.0, "gem_bundle", "paypal", False),
        ]
        agg = aggregate_ltv(0, txns, NO_FLAGS)
        assert (agg.ltv_d7, agg.ltv_d30, agg.ltv_d60, agg.ltv_d90) == (5.0, 15.0, 35.0, 35.0)
        assert agg.num_txn_d7 == 1
        assert agg.first_purchase_time_hours == 2.0

    def test_refunds_contribute_nothing(self):
        """Test refunded transactions are excluded from LTV and first purchase"""
        txns = [
            Transaction(1 * MS_PER_HOUR, 50.0, "gacha_pack", "carrier_billing", True),
            Transaction(3 * MS_PER_HOUR, 4.99, "starter_pack", "app_store", False),
        ]
        agg = aggregate_ltv(0, txns, NO_FLAGS)
        assert agg.ltv_d90 == 4.99
        assert agg.first_purchase_time_hours == 3.0
        assert agg.payer_flags["is_payer_by_d7"] == 1

    def test_no_purchases(self):
        """Test a non-payer aggregates to zeros"""
        agg = aggregate_ltv(0, [], NO_FLAGS)
        assert agg.ltv_d90 == 0.0
        assert agg.first_purchase_time_hours == 0.0
        assert set(agg.payer_flags.values()) == {0}


class TestPurchaseSchedule:
    """Test purchase timing rules"""

    def test_within_ninety_days(self):
        """Test every purchase lands in [install, install + 90 days)"""
        rng = SeededRandom(4)
        for _ in range(100):
            for t in purchase_schedule(rng, 0, 12, Milestones(), NO_FLAGS):
                assert 0 <= t < 90 * MS_PER_DAY

    def test_sorted(self):
        """Test timestamps come back in order"""
        times = purchase_schedule(SeededRandom(9), 0, 10, Milestones(first_dungeon_ms=3 * MS_PER_DAY), NO_FLAGS)
        assert times == sorted(times)

    def test_late_monetizer_skips_first_week(self):
        """Test late monetizers never buy during D0..D6"""
        flags = MonetizerFlags(late_monetizer=True, false_early_payer=False)
        rng = SeededRandom(17)
        for _ in range(50):
            for t in purchase_schedule(rng, 0, 8, Milestones(), flags):
                assert t // MS_PER_DAY >= 7

    def test_false_early_payer_front_loads(self):
        """Test false early payers buy at least 80% of purchases in the first 49 hours"""
        flags = MonetizerFlags(late_monetizer=False, false_early_payer=True)
        times = purchase_schedule(SeededRandom(23), 0, 10, Milestones(), flags)
        early = [t for t in times if t < 49 * MS_PER_HOUR]
        assert len(early) >= 8
        assert max(times) < 11 * MS_PER_DAY


class TestSkuAndPrice:
    """Test the SKU rule chain, price and refund probability"""

    def test_first_matching_rule_wins(self, scripted):
        """Test influencer installs hit the costume rule first"""
        ctx = PurchaseContext(early=True, milestone=None, spender=0.9, channel="influencer")
        assert pick_sku_by_context(scripted(0.0), ctx) == "costume_box"

    def test_default_sku(self, scripted):
        """Test the chain falls through to the default when no coin flip succeeds"""
        ctx = PurchaseContext(early=False, milestone=None, spender=0.2, channel="organic")
        assert pick_sku_by_context(scripted(0.99), ctx) == "gem_bundle"

    def test_milestone_context(self):
        """Test a purchase near level 20 carries the level20 context"""
        m = Milestones(level20_ms=5 * MS_PER_DAY)
        ctx = purchase_context(5 * MS_PER_DAY + MS_PER_HOUR, 0, m, 0.5, "organic")
        assert ctx.milestone == "level20"
        assert not ctx.early

    def test_price_floor(self):
        """Test amounts never fall below 0.99"""
        rng = SeededRandom(31)
        assert min(sample_txn_amount(rng, "starter_pack", 0.0, "BR") for _ in range(500)) >= 0.99

    def test_refund_probability(self):
        """Test riskier channels and SKUs refund more, within the cap"""
        assert refund_probability("monthly_card", "google_play") == pytest.approx(0.008)
        assert refund_probability("gacha_pack", "carrier_billing") == pytest.approx(0.033)
        assert refund_probability("gacha_pack", "carrier_billing") <= MAX_REFUND_P


class TestWorldPayments:
    """Test payments and labels of a generated world"""

    def test_payments_reference_known_players(self, world):
        """Test every payment belongs to a generated player"""
        assert set(world.payments_clean["game_user_id"]) <= set(world.players["game_user_id"])

    def test_some_players_pay(self, world):
        """Test the world has both payers and non-payers"""
        payers = world.labels["is_payer_by_d90"]
        assert 0 < payers.sum() < len(payers)
