# pltv_synth/scoring.py

"""
Train the pLTV model on the labelled feature rows, score every player, and
turn predictions into deciles and value segments.

Percentile rank of a prediction = (first index i in the ascending prediction
array with sorted[i] >= pred) + 1, divided by n. Decile = ceil(rank * 10),
capped at 10. Anything at or above the 99th-percentile prediction
(sorted[floor(0.99 n)]) is a "Whale (Top 1%)" and is placed in decile 10, even
when a long run of tied predictions would otherwise give it a lower decile.
"""

# Import libraries and modules
from __future__ import annotations
from dataclasses import dataclass
from math import ceil, floor
from typing import Sequence

import numpy as np
import pandas as pd

from .config import GBTConfig
from .contracts import DEFAULT_MODEL_FEATURES, PLTV_SCORES_COLS
from .estimators.estimator_gbt import (
    GBTModel,
    design_matrix,
    fit_gbt,
    resolve_features,
    transform_target,
)
from .eval import feature_importance_df, regression_metrics
from .rng import SeededRandom
from .split import HoldoutSplit, shuffled_holdout_split

SEGMENT_WHALE = "Whale (Top 1%)"
SEGMENT_HIGH = "High Value"
SEGMENT_MID = "Mid Value"
SEGMENT_LOW = "Low Value"
SEGMENT_MINIMAL = "Minimal Value"

@dataclass
class PLTVModelResult:
    model: GBTModel
    split: HoldoutSplit
    model_id: str
    model_type: str
    mae: float
    rmse: float
    r2: float
    scored: pd.DataFrame
    importance: pd.DataFrame

    @property
    def train_size(self) -> int:
        return self.split.train_size

    @property
    def test_size(self) -> int:
        return self.split.test_size

# Percentiles and segments
def percentile_rank_index(sorted_preds: np.ndarray, value: float) -> int:
    """First index with sorted_preds[i] >= value (binary search); last index when none."""
    n = len(sorted_preds)
    if n == 0:
        return 0
    lo, hi, ans = 0, n - 1, n - 1
    while lo <= hi:
        mid = (lo + hi) // 2
        if sorted_preds[mid] >= value:
            ans = mid
            hi = mid - 1
        else:
            lo = mid + 1
    return ans

def top_percentile_threshold(sorted_preds: np.ndarray, q: float = 0.99) -> float:
    n = len(sorted_preds)
    if n == 0:
        return 0.0
    return float(sorted_preds[min(int(floor(n * q)), n - 1)])

def segment_for(pred: float, decile: int, p99: float) -> str:
    if pred >= p99:
        return SEGMENT_WHALE
    if decile >= 9:
        return SEGMENT_HIGH
    if decile >= 7:
        return SEGMENT_MID
    if decile >= 4:
        return SEGMENT_LOW
    return SEGMENT_MINIMAL

def assign_segments(preds: np.ndarray) -> pd.DataFrame:
    """Decile, top-1% flag and segment for every prediction, in input order."""
    preds = np.asarray(preds, dtype=float)
    n = len(preds)
    sorted_preds = np.sort(preds)
    p99 = top_percentile_threshold(sorted_preds)

    deciles, tops, segments = [], [], []
    for p in preds:
        rank = (percentile_rank_index(sorted_preds, p) + 1) / (n or 1)
        decile = min(int(ceil(rank * 10)), 10)
        if p >= p99:
            decile = 10
        deciles.append(decile)
        tops.append(int(p >= p99))
        segments.append(segment_for(p, decile, p99))

    return pd.DataFrame({"pltv_decile": deciles, "is_top_1pct": tops, "segment": segments})

# Train + score
def model_id_for(cfg: GBTConfig) -> str:
    return f"pltv_{cfg.model_track}_{cfg.target}_s{cfg.seed}"

def model_type_for(cfg: GBTConfig) -> str:
    return "GBT (Cold-start)" if cfg.model_track == "cold" else "GBT (Warm-start)"

def train_pltv_model(
    feature_rows: pd.DataFrame,
    features: Sequence[str] = DEFAULT_MODEL_FEATURES,
    cfg: GBTConfig = GBTConfig(),
) -> PLTVModelResult:
    """Split, fit, evaluate on the hold-out, and score all rows (train + test)."""
    if cfg.target not in feature_rows.columns:
        raise KeyError(f"feature_rows missing target column '{cfg.target}'")

    rng = SeededRandom(cfg.seed)
    used = resolve_features(features, cfg.model_track)

    X = design_matrix(feature_rows, used)
    actual = pd.to_numeric(feature_rows[cfg.target], errors="coerce").fillna(0.0).to_numpy(dtype=float)
    y = transform_target(actual, cfg.use_log_target)

    split = shuffled_holdout_split(len(feature_rows), test_split=cfg.test_split, rng=rng)
    model = fit_gbt(X[split.train_idx], y[split.train_idx], features=used, cfg=cfg, rng=rng)

    metrics = regression_metrics(actual[split.test_idx], model.predict(X[split.test_idx]))

    preds = model.predict(X)
    seg = assign_segments(preds)
    scored = pd.DataFrame(
        {
            "game_user_id": feature_rows["game_user_id"].to_numpy(),
            "pltv_pred": np.round(preds, 2),
            "pltv_decile": seg["pltv_decile"].to_numpy(),
            "is_top_1pct": seg["is_top_1pct"].to_numpy(),
            "segment": seg["segment"].to_numpy(),
        }
    )

    return PLTVModelResult(
        model=model,
        split=split,
        model_id=model_id_for(cfg),
        model_type=model_type_for(cfg),
        mae=metrics["mae"],
        rmse=metrics["rmse"],
        r2=metrics["r2"],
        scored=scored,
        importance=feature_importance_df(model),
    )

def pltv_scores_df(result: PLTVModelResult) -> pd.DataFrame:
    """The exported score table: per-user scores plus run-level model metadata."""
    out = result.scored.copy()
    out["model_id"] = result.model_id
    out["model_type"] = result.model_type
    out["train_size"] = result.train_size
    out["test_size"] = result.test_size
    out["mae"] = result.mae
    out["rmse"] = result.rmse
    out["r2"] = result.r2
    return out[list(PLTV_SCORES_COLS)]

# Audiences
def build_audiences(scored: pd.DataFrame, features: pd.DataFrame, *, target: str = "ltv_d60") -> pd.DataFrame:
    """Activation audiences cut from the scores (seed lists, offers, reactivation)."""
    panel = scored.merge(
        features[["game_user_id", "is_payer_by_d7", "active_days_w7d", target]],
        on="game_user_id",
        how="left",
        validate="one_to_one",
    )
    audiences = [
        ("seed_hv_top1", "Seed: Top 1% Whales", "pltv_decile = 10 AND is_top_1pct", panel["is_top_1pct"].eq(1)),
        ("seed_hv_d7", "Seed: High Value D7", "pltv_decile >= 9", panel["pltv_decile"].ge(9)),
        (
            "potential_payer",
            "Potential Payer (No Purchase Yet)",
            "is_payer_by_d7 = 0 AND pltv_decile >= 7",
            panel["is_payer_by_d7"].eq(0) & panel["pltv_decile"].ge(7),
        ),
        (
            "reactivation",
            "Reactivation: Lapsed High Value",
            "pltv_decile >= 6 AND active_days_w7d <= 2",
            panel["pltv_decile"].ge(6) & panel["active_days_w7d"].le(2),
        ),
    ]

    rows = []
    for aud_id, name, criteria, mask in audiences:
        users = panel.loc[mask]
        rows.append(
            {
                "audience_id": aud_id,
                "name": name,
                "criteria": criteria,
                "user_count": int(len(users)),
                "avg_pltv": round(float(users["pltv_pred"].mean()), 2) if len(users) else 0.0,
                "avg_actual_ltv": round(float(users[target].mean()), 2) if len(users) else 0.0,
            }
        )
    return pd.DataFrame(rows)
