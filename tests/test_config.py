"""
Unit tests for run configuration validation and the event cap
"""

import pytest

from pltv_synth.config import CorruptionRates, GBTConfig, GenerationConfig, MessRates


class TestGenerationConfig:
    """Test generation defaults and the corruption headroom"""

    def test_cap_leaves_room_for_corruption(self):
        """Test event_cap + headroom == target_events"""
        cfg = GenerationConfig()
        assert cfg.event_cap + cfg.corruption_headroom == cfg.target_events
        assert cfg.corruption_headroom >= 3000 + 1500 + 500 + 300

    def test_no_corruption_no_headroom(self):
        """Test zero corruption rates give the full cap"""
        cfg = GenerationConfig(
            target_events=1000,
            corruption=CorruptionRates(0.0, 0.0, 0.0, 0.0, 0.0),
        )
        assert cfg.event_cap == 1000

    def test_cap_never_negative(self):
        """Test tiny targets clamp the cap at zero"""
        cfg = GenerationConfig(target_events=1)
        assert cfg.event_cap == 0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"num_players": 0},
            {"target_events": -1},
            {"install_window_days": 0},
            {"late_monetizer_rate": 1.5},
        ],
    )
    def test_rejects_bad_values(self, kwargs):
        """Test nonsensical settings raise ValueError"""
        with pytest.raises(ValueError):
            GenerationConfig(**kwargs)

    def test_rates_must_be_below_one(self):
        """Test rate dataclasses reject 1.0 and negatives"""
        with pytest.raises(ValueError):
            MessRates(drop_rate=1.0)
        with pytest.raises(ValueError):
            CorruptionRates(dup_events=-0.1)


class TestGBTConfig:
    """Test scorer configuration validation"""

    def test_defaults(self):
        """Test canonical defaults"""
        cfg = GBTConfig()
        assert (cfg.n_trees, cfg.learning_rate, cfg.max_depth, cfg.min_samples_leaf) == (120, 0.08, 4, 5)
        assert (cfg.max_bins, cfg.bag_fraction, cfg.seed) == (32, 0.8, 777)

    def test_unknown_track(self):
        """Test model_track must be warm or cold"""
        with pytest.raises(ValueError):
            GBTConfig(model_track="lukewarm")

    def test_test_split_range(self):
        """Test test_split outside [0, 1) is rejected"""
        with pytest.raises(ValueError):
            GBTConfig(test_split=1.0)
