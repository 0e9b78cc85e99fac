# pltv_synth/eval.py

"""
Evaluates the pLTV model. Hold-out regression metrics first, then the
business-facing views: which features the trees actually use, how predicted
value lines up with realised value per decile, and per-channel ROAS.
"""
# Import libraries and modules
from __future__ import annotations
from typing import Dict

import numpy as np
import pandas as pd

from .estimators.estimator_gbt import GBTModel

# Standard evaluation
def regression_metrics(actual: np.ndarray, pred: np.ndarray) -> Dict[str, float]:
    """MAE and RMSE (2 dp) and R^2 (3 dp) on the original target scale.

    An empty hold-out gives zeros for MAE/RMSE; a zero total sum of squares is
    treated as 1 so R^2 stays finite.
    """
    actual = np.asarray(actual, dtype=float)
    pred = np.asarray(pred, dtype=float)
    if actual.shape != pred.shape:
        raise ValueError(f"Shape mismatch: actual {actual.shape} vs pred {pred.shape}")

    n = max(len(actual), 1)
    err = pred - actual
    mae = float(np.abs(err).sum() / n)
    mse = float((err ** 2).sum() / n)
    mean = float(actual.sum() / n)
    ss_tot = float(((actual - mean) ** 2).sum())
    ss_res = float((err ** 2).sum())
    r2 = 1.0 - ss_res / (ss_tot or 1.0)

    return {
        "mae": round(mae, 2),
        "rmse": round(float(np.sqrt(mse)), 2),
        "r2": round(r2, 3),
    }

## Feature importance
def feature_importance_df(model: GBTModel) -> pd.DataFrame:
    """Accumulated split gain per feature, normalized to sum to 1 (0s when no split was made)."""
    gain = np.asarray(model.feature_gain, dtype=float)
    total = float(gain.sum())
    share = gain / total if total > 0 else np.zeros_like(gain)
    return (
        pd.DataFrame({"feature": model.features, "gain": gain, "importance": share})
        .sort_values(["importance", "feature"], ascending=[False, True])
        .reset_index(drop=True)
    )

## Decile lift
def decile_lift_df(scored: pd.DataFrame, labels: pd.DataFrame, *, target: str = "ltv_d60") -> pd.DataFrame:
    """Mean predicted vs mean realised value per predicted decile."""
    panel = scored[["game_user_id", "pltv_pred", "pltv_decile"]].merge(
        labels[["game_user_id", target]],
        on="game_user_id",
        how="left",
        validate="one_to_one",
    )
    return (
        panel.groupby("pltv_decile", sort=True)
        .agg(
            n_users=("game_user_id", "size"),
            mean_pred=("pltv_pred", "mean"),
            mean_actual=(target, "mean"),
            sum_actual=(target, "sum"),
        )
        .reset_index()
    )

## Channel ROAS
def channel_roas_df(
    scored: pd.DataFrame,
    features: pd.DataFrame,
    *,
    target: str = "ltv_d60",
) -> pd.DataFrame:
    """Per acquisition channel: attributed UA spend, predicted and realised revenue, ROAS."""
    panel = scored[["game_user_id", "pltv_pred"]].merge(
        features[["game_user_id", "channel", "ua_cost", target]],
        on="game_user_id",
        how="left",
        validate="one_to_one",
    )
    out = (
        panel.groupby("channel", sort=True)
        .agg(
            installs=("game_user_id", "size"),
            spend=("ua_cost", "sum"),
            predicted_revenue=("pltv_pred", "sum"),
            actual_revenue=(target, "sum"),
        )
        .reset_index()
    )
    spend = out["spend"].to_numpy(dtype=float)
    safe = np.where(spend > 0, spend, 1.0)
    out["predicted_roas"] = np.where(spend > 0, out["predicted_revenue"].to_numpy(dtype=float) / safe, 0.0).round(2)
    out["actual_roas"] = np.where(spend > 0, out["actual_revenue"].to_numpy(dtype=float) / safe, 0.0).round(2)
    for c in ("spend", "predicted_revenue", "actual_revenue"):
        out[c] = out[c].round(2)
    return out.sort_values("actual_roas", ascending=False).reset_index(drop=True)
