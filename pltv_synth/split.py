# pltv_synth/split.py

"""
Train/test split for the scorer. A seeded Fisher-Yates shuffle of row indices,
so the split is reproducible and independent of the generation stream.
"""

# Import libraries and modules
from __future__ import annotations
from dataclasses import dataclass
from math import floor

import numpy as np
import pandas as pd

from .rng import SeededRandom

@dataclass(frozen=True)
class HoldoutSplit:
    train_idx: np.ndarray
    test_idx: np.ndarray
    n_rows: int
    test_split: float

    @property
    def train_size(self) -> int:
        return int(len(self.train_idx))

    @property
    def test_size(self) -> int:
        return int(len(self.test_idx))

def shuffled_holdout_split(n_rows: int, *, test_split: float, rng: SeededRandom) -> HoldoutSplit:
    """
    Shuffle 0..n_rows-1 with `rng` and take the first floor(n * (1 - test_split))
    indices as TRAIN; the rest is TEST.
    """
    if n_rows < 0:
        raise ValueError(f"n_rows must be >= 0, got {n_rows}")
    if not 0.0 <= test_split < 1.0:
        raise ValueError(f"test_split must be in [0, 1), got {test_split}")

    indices = list(range(n_rows))
    rng.shuffle(indices)
    split_at = int(floor(n_rows * (1.0 - test_split)))

    return HoldoutSplit(
        train_idx=np.asarray(indices[:split_at], dtype=int),
        test_idx=np.asarray(indices[split_at:], dtype=int),
        n_rows=n_rows,
        test_split=float(test_split),
    )

def split_summary_df(split: HoldoutSplit) -> pd.DataFrame:
    """Small helper for exporting split metadata."""
    return pd.DataFrame(
        [
            {
                "n_rows": split.n_rows,
                "test_split": split.test_split,
                "train_rows": split.train_size,
                "test_rows": split.test_size,
            }
        ]
    )
