# pltv_synth/labels.py

"""
Join installs, payment aggregates, week-one behaviour and install CPI into one
labelled row per player, and flatten those rows into the numeric scoring view.
"""

# Import libraries and modules
from __future__ import annotations
from typing import Mapping, Sequence, Tuple

import pandas as pd

from .contracts import FEATURE_COLS, LABELS_COLS, LTV_COLS, UNKNOWN
from .events import WeekOneSummary
from .monetization import PaymentAggregate
from .players import Player

DEVICE_TIER_NUM = {"low": 0, "mid": 1, "high": 2}
FEATURE_HORIZON_DAYS = 7

def install_ua_cost(player: Player, cpi_lookup: Mapping[Tuple[str, str], float]) -> float:
    """CPI of the install's campaign/day; 0 for untracked or unattributed installs."""
    if not player.consent_tracking or player.campaign_id == UNKNOWN:
        return 0.0
    return float(cpi_lookup.get((player.campaign_id, player.install_date), 0.0))

def assemble_labels(
    players: Sequence[Player],
    aggregates: Mapping[str, PaymentAggregate],
    week_one: Mapping[str, WeekOneSummary],
    cpi_lookup: Mapping[Tuple[str, str], float],
) -> pd.DataFrame:
    rows = []
    for p in players:
        agg = aggregates.get(p.game_user_id, PaymentAggregate())
        w7 = week_one.get(p.game_user_id, WeekOneSummary(0, 0, 0))
        ua_cost = install_ua_cost(p, cpi_lookup)

        rows.append(
            {
                "game_user_id": p.game_user_id,
                "install_date": p.install_date,
                "ua_cost": round(ua_cost, 2),
                "ltv_d7": agg.ltv_d7,
                "ltv_d30": agg.ltv_d30,
                "ltv_d60": agg.ltv_d60,
                "ltv_d90": agg.ltv_d90,
                **agg.payer_flags,
                "num_txn_d7": agg.num_txn_d7,
                "first_purchase_time_hours": agg.first_purchase_time_hours,
                "profit_d90": round(agg.ltv_d90 - ua_cost, 2),
                "late_monetizer_flag": int(agg.late_monetizer),
                "false_early_payer_flag": int(agg.false_early_payer),
                "active_days_w7d": w7.active_days_w7d,
                "sessions_cnt_w7d": w7.sessions_cnt_w7d,
                "max_level_w7d": w7.max_level_w7d,
            }
        )
    return pd.DataFrame(rows, columns=list(LABELS_COLS))

def build_feature_rows(labels: pd.DataFrame, players: pd.DataFrame) -> pd.DataFrame:
    """One numeric row per player for the GBT, plus channel and LTV targets."""
    p = players[["game_user_id", "channel", "os", "device_tier"]]
    df = labels.merge(p, on="game_user_id", how="left", validate="one_to_one")

    out = pd.DataFrame({"game_user_id": df["game_user_id"]})
    out["days_since_install"] = FEATURE_HORIZON_DAYS
    out["sessions_cnt_w7d"] = df["sessions_cnt_w7d"].astype(int)
    out["active_days_w7d"] = df["active_days_w7d"].astype(int)
    out["max_level_w7d"] = df["max_level_w7d"].astype(int)
    out["revenue_d7"] = df["ltv_d7"].astype(float)
    out["is_payer_by_d7"] = df["is_payer_by_d7"].astype(int)
    out["num_txn_d7"] = df["num_txn_d7"].astype(int)
    out["first_purchase_time_hours"] = df["first_purchase_time_hours"].astype(float)
    out["ua_cost"] = df["ua_cost"].astype(float)
    out["device_tier_num"] = df["device_tier"].map(DEVICE_TIER_NUM).fillna(0).astype(int)
    out["os_num"] = (df["os"] == "ios").astype(int)
    out["channel"] = df["channel"]
    for c in LTV_COLS:
        out[c] = df[c].astype(float)

    return out[["game_user_id", *FEATURE_COLS, "channel", *LTV_COLS]]
