"""
Unit tests for the seeded hold-out split
"""

import numpy as np
import pytest

from pltv_synth.rng import SeededRandom
from pltv_synth.split import shuffled_holdout_split, split_summary_df


class TestHoldoutSplit:
    """Test split sizes, coverage and reproducibility"""

    def test_sizes(self):
        """Test train takes floor(n * (1 - test_split)) rows"""
        split = shuffled_holdout_split(10, test_split=0.25, rng=SeededRandom(777))
        assert split.train_size == 7
        assert split.test_size == 3

    def test_partition(self):
        """Test train and test are disjoint and cover every row"""
        split = shuffled_holdout_split(101, test_split=0.3, rng=SeededRandom(777))
        both = np.concatenate([split.train_idx, split.test_idx])
        assert sorted(both.tolist()) == list(range(101))

    def test_reproducible(self):
        """Test the same seed gives the same split"""
        a = shuffled_holdout_split(50, test_split=0.2, rng=SeededRandom(777))
        b = shuffled_holdout_split(50, test_split=0.2, rng=SeededRandom(777))
        assert np.array_equal(a.train_idx, b.train_idx)

    def test_zero_test_split(self):
        """Test test_split 0 trains on everything"""
        split = shuffled_holdout_split(12, test_split=0.0, rng=SeededRandom(1))
        assert split.test_size == 0

    def test_bad_fraction(self):
        """Test fractions outside [0, 1) are rejected"""
        with pytest.raises(ValueError):
            shuffled_holdout_split(10, test_split=1.0, rng=SeededRandom(1))

    def test_summary(self):
        """Test the exported split summary"""
        split = shuffled_holdout_split(20, test_split=0.25, rng=SeededRandom(1))
        row = split_summary_df(split).iloc[0]
        assert (row["train_rows"], row["test_rows"]) == (15, 5)
