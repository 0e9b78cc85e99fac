# pltv_synth/estimators/estimator_gbt.py

"""
Estimator GBT: histogram-binned gradient-boosted regression trees on squared error.

Model:
    F(x) = sum_t tree_t(x),   each leaf value = learning_rate * mean(residual in leaf)

Training:
    r_0 = y
    for t in 1..n_trees:
        bag   = bootstrap sample (with replacement) of floor(bag_fraction * n) train rows
        tree  = grow on (X[bag], r[bag])
        r     = r - tree(X)            # on EVERY training row, not only the bag

Split search only evaluates a bounded set of candidate thresholds per feature:
all distinct training values when there are at most `max_bins` of them, else
max_bins - 1 quantile values. A split is kept when it strictly beats the best
variance reduction found so far and both children hold `min_samples_leaf`
rows; otherwise the node becomes a leaf.

Each node owns only an index array into the shared, read-only training matrix.
"""

# Import libraries and modules
from __future__ import annotations
from dataclasses import dataclass, field
from math import floor
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from ..config import GBTConfig
from ..rng import SeededRandom

# Features a cold-start model never sees (unavailable at serving time)
MONETIZATION_FEATURES = ("is_payer_by_d7", "num_txn_d7", "revenue_d7", "first_purchase_time_hours")

# Gains at or below this are float noise on (near-)constant residuals
MIN_SPLIT_GAIN = 1e-12

@dataclass
class TreeNode:
    value: float = 0.0
    feature: int = -1
    threshold: float = 0.0
    left: Optional["TreeNode"] = None
    right: Optional["TreeNode"] = None

    @property
    def is_leaf(self) -> bool:
        return self.left is None

    def depth(self) -> int:
        if self.is_leaf:
            return 0
        return 1 + max(self.left.depth(), self.right.depth())

    def features_used(self) -> set[int]:
        if self.is_leaf:
            return set()
        return {self.feature} | self.left.features_used() | self.right.features_used()

@dataclass
class GBTModel:
    features: List[str]
    trees: List[TreeNode]
    use_log_target: bool
    feature_gain: np.ndarray
    cfg: GBTConfig = field(default_factory=GBTConfig)

    def predict_raw(self, X: np.ndarray) -> np.ndarray:
        X = np.asarray(X, dtype=float)
        pred = np.zeros(len(X), dtype=float)
        for tree in self.trees:
            pred += predict_tree(tree, X)
        return pred

    def predict(self, X: np.ndarray) -> np.ndarray:
        """Predictions on the original target scale, never negative."""
        raw = self.predict_raw(X)
        if self.use_log_target:
            return np.expm1(np.maximum(raw, 0.0))
        return np.maximum(raw, 0.0)

    def features_used(self) -> set[str]:
        used: set[int] = set()
        for tree in self.trees:
            used |= tree.features_used()
        return {self.features[i] for i in used}

# Inputs
def resolve_features(features: Sequence[str], model_track: str) -> List[str]:
    """Requested features, minus the monetization ones for the cold-start track."""
    out = list(dict.fromkeys(features))
    if model_track == "cold":
        out = [f for f in out if f not in MONETIZATION_FEATURES]
    return out

def design_matrix(df: pd.DataFrame, features: Sequence[str]) -> np.ndarray:
    """Numeric matrix in `features` order; missing or non-numeric values become 0."""
    if not features:
        return np.zeros((len(df), 0), dtype=float)
    cols = []
    for f in features:
        if f in df.columns:
            cols.append(pd.to_numeric(df[f], errors="coerce").fillna(0.0).to_numpy(dtype=float))
        else:
            cols.append(np.zeros(len(df), dtype=float))
    return np.column_stack(cols)

def transform_target(y: np.ndarray, use_log_target: bool) -> np.ndarray:
    y = np.asarray(y, dtype=float)
    return np.log1p(y) if use_log_target else y

def feature_thresholds(X: np.ndarray, max_bins: int = 32) -> List[np.ndarray]:
    """Candidate split thresholds per feature column (quantile-style histogram bins)."""
    out: List[np.ndarray] = []
    for f in range(X.shape[1]):
        uniq = np.unique(X[:, f])
        if len(uniq) <= max_bins:
            out.append(uniq)
            continue
        step = len(uniq) / max_bins
        pos = [int(floor(b * step)) for b in range(1, max_bins)]
        out.append(uniq[pos])
    return out

# Tree growing
def _best_split(
    X: np.ndarray,
    residuals: np.ndarray,
    idx: np.ndarray,
    thresholds: Sequence[np.ndarray],
    min_leaf: int,
) -> tuple[int, float, float]:
    """(feature, threshold, gain) of the best admissible split; feature -1 when none."""
    r = residuals[idx]
    n = len(idx)
    rc = r - r.mean()
    rc2 = rc * rc
    parent_sse = float(rc2.sum())
    s_tot = float(rc.sum())

    best_f, best_thr, best_gain = -1, 0.0, MIN_SPLIT_GAIN
    for f, thr in enumerate(thresholds):
        if len(thr) == 0:
            continue
        mask = (X[idx, f][:, None] <= thr[None, :]).astype(float)
        n_left = mask.sum(axis=0)
        n_right = n - n_left
        ok = (n_left >= min_leaf) & (n_right >= min_leaf)
        if not ok.any():
            continue

        s_left = rc @ mask
        q_left = rc2 @ mask
        s_right = s_tot - s_left
        q_right = parent_sse - q_left
        with np.errstate(divide="ignore", invalid="ignore"):
            sse_left = q_left - s_left ** 2 / n_left
            sse_right = q_right - s_right ** 2 / n_right
        gain = np.where(ok, parent_sse - sse_left - sse_right, -np.inf)

        k = int(np.argmax(gain))
        if gain[k] > best_gain:
            best_f, best_thr, best_gain = f, float(thr[k]), float(gain[k])

    return best_f, best_thr, best_gain

def build_tree(
    X: np.ndarray,
    residuals: np.ndarray,
    idx: np.ndarray,
    thresholds: Sequence[np.ndarray],
    cfg: GBTConfig,
    feature_gain: np.ndarray,
    depth: int = 0,
) -> TreeNode:
    if len(idx) == 0:
        return TreeNode(value=0.0)

    mean = float(residuals[idx].mean())
    if depth >= cfg.max_depth or len(idx) < cfg.min_samples_leaf * 2:
        return TreeNode(value=mean * cfg.learning_rate)

    f, thr, gain = _best_split(X, residuals, idx, thresholds, cfg.min_samples_leaf)
    if f == -1:
        return TreeNode(value=mean * cfg.learning_rate)

    feature_gain[f] += gain
    go_left = X[idx, f] <= thr
    return TreeNode(
        feature=f,
        threshold=thr,
        left=build_tree(X, residuals, idx[go_left], thresholds, cfg, feature_gain, depth + 1),
        right=build_tree(X, residuals, idx[~go_left], thresholds, cfg, feature_gain, depth + 1),
    )

def predict_tree(node: TreeNode, X: np.ndarray) -> np.ndarray:
    out = np.empty(len(X), dtype=float)
    _fill(node, X, np.arange(len(X)), out)
    return out

def _fill(node: TreeNode, X: np.ndarray, rows: np.ndarray, out: np.ndarray) -> None:
    if node.is_leaf:
        out[rows] = node.value
        return
    go_left = X[rows, node.feature] <= node.threshold
    _fill(node.left, X, rows[go_left], out)
    _fill(node.right, X, rows[~go_left], out)

# Boosting
def fit_gbt(
    X: np.ndarray,
    y: np.ndarray,
    *,
    features: Sequence[str],
    cfg: GBTConfig = GBTConfig(),
    rng: Optional[SeededRandom] = None,
) -> GBTModel:
    """
    Fit the boosted ensemble on already-transformed targets `y`.

    `rng` supplies the bootstrap draws; pass the scorer's own stream so model
    changes never perturb the data generator.
    """
    rng = rng if rng is not None else SeededRandom(cfg.seed)
    X = np.asarray(X, dtype=float)
    residuals = np.asarray(y, dtype=float).copy()
    n = len(X)
    if X.ndim != 2 or X.shape[1] != len(features):
        raise ValueError(f"X must be 2-D with {len(features)} columns, got shape {X.shape}")
    if len(residuals) != n:
        raise ValueError(f"X has {n} rows but y has {len(residuals)}")

    thresholds = feature_thresholds(X, cfg.max_bins)
    feature_gain = np.zeros(len(features), dtype=float)
    trees: List[TreeNode] = []

    bag_size = int(floor(n * cfg.bag_fraction))
    for _ in range(cfg.n_trees):
        bag = np.fromiter((int(floor(rng.next() * n)) for _ in range(bag_size)), dtype=int, count=bag_size)
        tree = build_tree(X, residuals, bag, thresholds, cfg, feature_gain)
        trees.append(tree)
        if n:
            residuals -= predict_tree(tree, X)

    return GBTModel(
        features=list(features),
        trees=trees,
        use_log_target=cfg.use_log_target,
        feature_gain=feature_gain,
        cfg=cfg,
    )
