"""
Integration tests for the data generation process
"""

import pandas as pd

from pltv_synth.checks import (
    assert_consent_gating,
    assert_ltv_monotone,
    assert_refunds_excluded,
    assert_within_window,
)
from pltv_synth.config import GenerationConfig
from pltv_synth.contracts import EVENTS_COLS, PAYMENTS_COLS, PLAYERS_COLS, UA_COSTS_COLS
from pltv_synth.dgp import generate_game_world


class TestGameWorld:
    """Test the properties every generated world must hold"""

    def test_schemas(self, world):
        """Test every table has its declared columns, in order"""
        assert list(world.players.columns) == list(PLAYERS_COLS)
        assert list(world.events.columns) == list(EVENTS_COLS)
        assert list(world.payments.columns) == list(PAYMENTS_COLS)
        assert list(world.ua_costs.columns) == list(UA_COSTS_COLS)

    def test_roster_size(self, world, small_cfg):
        """Test every requested player is generated"""
        assert len(world.players) == small_cfg.num_players
        assert world.players["game_user_id"].iloc[0] == "player_00001"
        assert world.players["game_user_id"].is_unique

    def test_event_cap(self, world, small_cfg):
        """Test the events file never exceeds the target"""
        assert len(world.events) <= small_cfg.target_events
        assert len(world.events_clean) <= small_cfg.event_cap

    def test_roster_survives_tiny_cap(self):
        """Test reaching the cap stops events but not players"""
        cfg = GenerationConfig(num_players=40, target_events=500)
        w = generate_game_world(cfg)
        assert len(w.players) == 40
        assert len(w.labels) == 40
        assert len(w.events) <= 500
        assert w.budget.exhausted

    def test_install_window(self, world, small_cfg):
        """Test installs fall inside the acquisition window"""
        dates = pd.to_datetime(world.players["install_time"], utc=True)
        assert dates.min() >= pd.Timestamp("2024-10-01", tz="UTC")
        assert dates.max() < pd.Timestamp("2024-10-01", tz="UTC") + pd.Timedelta(days=small_cfg.install_window_days)

    def test_domain_invariants(self, world):
        """Test consent gating, nested LTVs, refund exclusion and time windows"""
        assert_consent_gating(world.players)
        assert_ltv_monotone(world.labels)
        assert_refunds_excluded(world.payments_clean, world.labels)
        assert_within_window(world.payments_clean, world.players, time_col="txn_time", name="payments")
        assert_within_window(world.events_clean, world.players, time_col="event_time", name="events")

    def test_deterministic(self):
        """Test the same configuration reproduces every table"""
        cfg = GenerationConfig(num_players=30, target_events=3000)
        a, b = generate_game_world(cfg), generate_game_world(cfg)
        for name in ("players", "events", "payments", "ua_costs", "labels"):
            pd.testing.assert_frame_equal(getattr(a, name), getattr(b, name))

    def test_seed_changes_output(self):
        """Test a different seed gives a different world"""
        a = generate_game_world(GenerationConfig(num_players=30, target_events=3000, seed=1))
        b = generate_game_world(GenerationConfig(num_players=30, target_events=3000, seed=2))
        assert not a.players.equals(b.players)
