"""
Unit tests for label assembly and the scoring feature view
"""

import pytest

from pltv_synth.contracts import FEATURE_COLS, LABELS_COLS, LTV_COLS, UNKNOWN
from pltv_synth.labels import install_ua_cost
from pltv_synth.players import Player
from pltv_synth.utils import date_to_ms


def _player(consent_tracking=True, campaign_id="l2m_launch_kr"):
    return Player(
        game_user_id="player_00001",
        install_id="i_123456",
        install_ms=date_to_ms("2024-10-03"),
        campaign_id=campaign_id if consent_tracking else UNKNOWN,
        adset_id="rpg_interest" if consent_tracking else UNKNOWN,
        creative_id="gameplay_boss" if consent_tracking else UNKNOWN,
        channel="meta_ads",
        country="KR",
        os="ios",
        device_model="iPhone 15 Pro",
        device_tier="high",
        consent_tracking=consent_tracking,
        consent_marketing=True,
    )


class TestInstallCost:
    """Test CPI attribution per install"""

    def test_tracked_install(self):
        """Test the campaign/day CPI is attributed"""
        lookup = {("l2m_launch_kr", "2024-10-03"): 4.25}
        assert install_ua_cost(_player(), lookup) == 4.25

    def test_untracked_install(self):
        """Test installs without tracking consent cost nothing"""
        lookup = {(UNKNOWN, "2024-10-03"): 9.0}
        assert install_ua_cost(_player(consent_tracking=False), lookup) == 0.0

    def test_missing_day(self):
        """Test a campaign/day with no cost row falls back to 0"""
        assert install_ua_cost(_player(), {}) == 0.0


class TestWorldLabels:
    """Test the generated label and feature tables"""

    def test_one_row_per_player(self, world):
        """Test labels and players are one-to-one"""
        assert list(world.labels.columns) == list(LABELS_COLS)
        assert len(world.labels) == len(world.players)
        assert set(world.labels["game_user_id"]) == set(world.players["game_user_id"])

    def test_profit(self, world):
        """Test profit_d90 = ltv_d90 - ua_cost"""
        lab = world.labels
        assert (lab["profit_d90"] - (lab["ltv_d90"] - lab["ua_cost"])).abs().max() < 0.011

    def test_untracked_players_have_no_cost(self, world):
        """Test installs without tracking consent carry ua_cost 0"""
        merged = world.labels.merge(world.players[["game_user_id", "consent_tracking"]], on="game_user_id")
        assert (merged.loc[merged["consent_tracking"] == "false", "ua_cost"] == 0).all()

    def test_payer_flags_follow_ltv(self, world):
        """Test is_payer_by_dN == (ltv_dN > 0)"""
        lab = world.labels
        for h in (7, 30, 60, 90):
            assert (lab[f"is_payer_by_d{h}"] == (lab[f"ltv_d{h}"] > 0).astype(int)).all()

    def test_feature_rows(self, world):
        """Test feature rows carry every feature column, channel and targets"""
        feats = world.features
        assert list(feats.columns) == ["game_user_id", *FEATURE_COLS, "channel", *LTV_COLS]
        assert (feats["days_since_install"] == 7).all()
        assert set(feats["device_tier_num"]) <= {0, 1, 2}
        assert feats["revenue_d7"].tolist() == pytest.approx(world.labels["ltv_d7"].tolist())
