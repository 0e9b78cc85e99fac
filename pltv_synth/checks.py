# pltv_synth/checks.py

"""
Cross-cutting assertions used across the pipeline.

Intentionally lightweight and designed to fail fast with actionable
error messages and a small sample of offending rows.
"""

# Import libraries and modules
from __future__ import annotations
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from .contracts import (
    COL_USER_ID,
    FALSE_STR,
    LTV_COLS,
    PLTV_SCORES_COLS,
    TRUE_STR,
    UNKNOWN,
)
from .utils import to_utc

# Data checks
def assert_has_cols(df: pd.DataFrame, cols: Sequence[str], name: str) -> None:
    missing = [c for c in cols if c not in df.columns]
    if missing:
        raise AssertionError(f"{name} missing columns: {missing}. Found: {list(df.columns)}")

def assert_unique_col(df: pd.DataFrame, col: str, name: str) -> None:
    if col not in df.columns:
        raise AssertionError(f"{name} missing column: {col}")
    if not df[col].is_unique:
        dupes = df.loc[df[col].duplicated(), col].head(10).tolist()
        raise AssertionError(f"{name}.{col} is not unique. Example duplicates: {dupes}")

def assert_nonneg(df: pd.DataFrame, col: str, name: str) -> None:
    if col not in df.columns:
        raise AssertionError(f"{name} missing column: {col}")
    if (df[col] < 0).any():
        bad = df.loc[df[col] < 0, col].head(10).tolist()
        raise AssertionError(f"{name}.{col} has negative values. Examples: {bad}")

def assert_one_to_one(a: pd.DataFrame, b: pd.DataFrame, *, key: str = COL_USER_ID, names: tuple[str, str] = ("a", "b")) -> None:
    """Same key set on both sides, each key exactly once."""
    assert_unique_col(a, key, names[0])
    assert_unique_col(b, key, names[1])
    ka, kb = set(a[key]), set(b[key])
    if ka != kb:
        raise AssertionError(
            f"{names[0]} and {names[1]} differ on '{key}'. "
            f"Only in {names[0]} (sample): {sorted(ka - kb)[:10]}; only in {names[1]} (sample): {sorted(kb - ka)[:10]}"
        )

def assert_keys_subset(child: pd.DataFrame, parent: pd.DataFrame, *, key: str = COL_USER_ID, name: str = "child") -> None:
    """Every non-empty key in `child` exists in `parent`."""
    keys = child[key].dropna().astype(str)
    keys = keys[keys.ne("")]
    orphans = sorted(set(keys) - set(parent[key].astype(str)))
    if orphans:
        raise AssertionError(f"{name} has {len(orphans)} keys not present in parent. Sample: {orphans[:10]}")

# Domain invariants
def assert_ltv_monotone(labels: pd.DataFrame, *, atol: float = 1e-9) -> None:
    assert_has_cols(labels, LTV_COLS, "labels")
    vals = labels[list(LTV_COLS)].to_numpy(dtype=float)
    bad = np.any(np.diff(vals, axis=1) < -atol, axis=1)
    if bool(bad.any()):
        sample = labels.loc[bad, [COL_USER_ID, *LTV_COLS]].head(10)
        raise AssertionError(f"LTV windows not nested (ltv_d7 <= ... <= ltv_d90). Sample:\n{sample.to_string(index=False)}")

def assert_consent_gating(players: pd.DataFrame) -> None:
    id_cols = ["campaign_id", "adset_id", "creative_id"]
    assert_has_cols(players, ["consent_tracking", *id_cols], "players")
    no_consent = players["consent_tracking"].astype(str).eq(FALSE_STR)
    leaked = no_consent & players[id_cols].ne(UNKNOWN).any(axis=1)
    if bool(leaked.any()):
        sample = players.loc[leaked, [COL_USER_ID, *id_cols]].head(10)
        raise AssertionError(f"Attribution ids present without tracking consent. Sample:\n{sample.to_string(index=False)}")

def assert_event_cap(events: pd.DataFrame, cap: int, name: str = "events") -> None:
    if len(events) > cap:
        raise AssertionError(f"{name} has {len(events)} rows, above the cap of {cap}")

def assert_refunds_excluded(payments_clean: pd.DataFrame, labels: pd.DataFrame, *, atol: float = 0.011) -> None:
    """ltv_d90 equals the sum of non-refunded amounts per player (refunds net to 0)."""
    pay = payments_clean.copy()
    pay["net"] = np.where(pay["is_refund"].astype(str).eq(TRUE_STR), 0.0, pd.to_numeric(pay["amount_usd"]))
    net = pay.groupby(COL_USER_ID)["net"].sum()
    ltv = labels.set_index(COL_USER_ID)["ltv_d90"]
    diff = (ltv - net.reindex(ltv.index).fillna(0.0)).abs()
    if bool((diff > atol).any()):
        raise AssertionError(f"ltv_d90 does not match net payments for {int((diff > atol).sum())} players. Sample:\n{diff[diff > atol].head(10)}")

def assert_within_window(
    df: pd.DataFrame,
    players: pd.DataFrame,
    *,
    time_col: str,
    window_days: int = 90,
    name: str = "df",
) -> None:
    """Every timestamp lies in [install_time, install_time + window_days]."""
    install = to_utc(players.set_index(COL_USER_ID)["install_time"])
    t = to_utc(df[time_col])
    inst = pd.to_datetime(df[COL_USER_ID].map(install), utc=True)
    if t.isna().any() or inst.isna().any():
        raise AssertionError(f"{name} has unparseable timestamps or unknown users")
    bad = ((t < inst) | (t > inst + pd.Timedelta(days=window_days))).to_numpy()
    if bool(bad.any()):
        sample = df.loc[bad, [COL_USER_ID, time_col]].head(10)
        raise AssertionError(f"{name} has {int(bad.sum())} rows outside the install window. Sample:\n{sample.to_string(index=False)}")

def assert_scores_contract(scores: pd.DataFrame, n_players: Optional[int] = None) -> None:
    assert_has_cols(scores, PLTV_SCORES_COLS, "pltv_scores")
    assert_unique_col(scores, COL_USER_ID, "pltv_scores")
    if n_players is not None and len(scores) != n_players:
        raise AssertionError(f"pltv_scores has {len(scores)} rows, expected {n_players}")
    assert_nonneg(scores, "pltv_pred", "pltv_scores")
    dec = scores["pltv_decile"]
    if bool(((dec < 1) | (dec > 10)).any()):
        raise AssertionError("pltv_decile outside 1..10")
    top_bad = scores["is_top_1pct"].eq(1) & scores["pltv_decile"].ne(10)
    if bool(top_bad.any()):
        sample = scores.loc[top_bad, [COL_USER_ID, "pltv_pred", "pltv_decile"]].head(10)
        raise AssertionError(f"Top-1% rows outside decile 10. Sample:\n{sample.to_string(index=False)}")

# Soft findings
def warn_negative_profit(labels: pd.DataFrame, *, max_share: float = 0.95) -> None:
    """Print a warning when almost every tracked install loses money by D90."""
    tracked = labels.loc[labels["ua_cost"] > 0]
    if tracked.empty:
        return
    share = float((tracked["profit_d90"] < 0).mean())
    if share > max_share:
        print(f"\nWARNING: {share:.1%} of attributed installs have negative profit_d90.")
        print("UA cost dominates realised value; check the CPI ranges or the monetization priors.")
