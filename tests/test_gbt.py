"""
Unit tests for the histogram-binned gradient-boosted trees
"""

import numpy as np
import pandas as pd
import pytest

from pltv_synth.config import GBTConfig
from pltv_synth.estimators.estimator_gbt import (
    MONETIZATION_FEATURES,
    design_matrix,
    feature_thresholds,
    fit_gbt,
    resolve_features,
    transform_target,
)
from pltv_synth.contracts import DEFAULT_MODEL_FEATURES
from pltv_synth.rng import SeededRandom


class TestInputs:
    """Test feature resolution, the design matrix and candidate thresholds"""

    def test_cold_track_drops_monetization(self):
        """Test cold-start models never see D7 monetization features"""
        cold = resolve_features(DEFAULT_MODEL_FEATURES, "cold")
        assert not set(cold) & set(MONETIZATION_FEATURES)
        assert resolve_features(DEFAULT_MODEL_FEATURES, "warm") == list(DEFAULT_MODEL_FEATURES)

    def test_design_matrix_fills_missing(self):
        """Test absent or non-numeric values become 0"""
        df = pd.DataFrame({"a": [1, "x", 3]})
        X = design_matrix(df, ["a", "b"])
        assert X.tolist() == [[1.0, 0.0], [0.0, 0.0], [3.0, 0.0]]

    def test_log_target(self):
        """Test log1p transform"""
        assert transform_target(np.array([0.0, np.e - 1]), True).tolist() == pytest.approx([0.0, 1.0])

    def test_thresholds_few_values(self):
        """Test every distinct value is a candidate when there are few"""
        X = np.array([[1.0], [2.0], [2.0], [5.0]])
        assert feature_thresholds(X, max_bins=32)[0].tolist() == [1.0, 2.0, 5.0]

    def test_thresholds_binned(self):
        """Test many distinct values are reduced to max_bins - 1 quantiles"""
        X = np.arange(1000, dtype=float).reshape(-1, 1)
        thr = feature_thresholds(X, max_bins=32)[0]
        assert len(thr) == 31
        assert np.all(np.diff(thr) > 0)


class TestFit:
    """Test the boosting loop"""

    def test_learns_a_step(self):
        """Test a single step function is recovered"""
        X = np.arange(100, dtype=float).reshape(-1, 1)
        y = np.where(X[:, 0] >= 50, 10.0, 0.0)
        cfg = GBTConfig(n_trees=60, learning_rate=0.3, use_log_target=False, bag_fraction=1.0)
        model = fit_gbt(X, y, features=["x"], cfg=cfg, rng=SeededRandom(777))
        pred = model.predict(np.array([[10.0], [90.0]]))
        assert pred[0] < 1.0
        assert pred[1] > 9.0
        assert model.features_used() == {"x"}

    def test_constant_target_never_splits(self):
        """Test a constant target grows leaf-only trees"""
        X = np.random.default_rng(0).normal(size=(60, 3))
        y = np.full(60, 2.0)
        model = fit_gbt(X, y, features=["a", "b", "c"], cfg=GBTConfig(n_trees=10, use_log_target=False))
        assert all(t.is_leaf for t in model.trees)
        assert model.feature_gain.sum() == 0.0
        pred = model.predict(X)
        assert np.allclose(pred, pred[0])

    def test_depth_limit(self):
        """Test trees respect max_depth"""
        rng = np.random.default_rng(1)
        X = rng.normal(size=(200, 4))
        y = X[:, 0] * 3 + X[:, 1] ** 2
        model = fit_gbt(X, y, features=list("abcd"), cfg=GBTConfig(n_trees=5, max_depth=2, use_log_target=False))
        assert max(t.depth() for t in model.trees) <= 2

    def test_predictions_non_negative(self):
        """Test predictions are clipped at zero"""
        X = np.arange(40, dtype=float).reshape(-1, 1)
        y = -np.ones(40)
        model = fit_gbt(X, y, features=["x"], cfg=GBTConfig(n_trees=5, use_log_target=False))
        assert (model.predict(X) >= 0).all()

    def test_empty_training_set(self):
        """Test zero rows give leaf-only trees predicting 0"""
        X = np.zeros((0, 2))
        model = fit_gbt(X, np.zeros(0), features=["a", "b"], cfg=GBTConfig(n_trees=3))
        assert model.predict(np.zeros((4, 2))).tolist() == [0.0, 0.0, 0.0, 0.0]

    def test_shape_mismatch(self):
        """Test feature names must match the matrix width"""
        with pytest.raises(ValueError):
            fit_gbt(np.zeros((5, 2)), np.zeros(5), features=["a"])
