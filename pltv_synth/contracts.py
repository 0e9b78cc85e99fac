# pltv_synth/contracts.py

# Import libraries and modules
from __future__ import annotations
from typing import Final, Tuple

# Canonical column names (use everywhere to avoid drift)
COL_USER_ID: Final[str] = "game_user_id"
COL_INSTALL_TIME: Final[str] = "install_time"
COL_INSTALL_DATE: Final[str] = "install_date"
COL_EVENT_TIME: Final[str] = "event_time"
COL_TXN_TIME: Final[str] = "txn_time"
COL_CAMPAIGN_ID: Final[str] = "campaign_id"
COL_UA_COST: Final[str] = "ua_cost"

UNKNOWN: Final[str] = "unknown"
TRUE_STR: Final[str] = "true"
FALSE_STR: Final[str] = "false"

PLAYERS_COLS: Final[Tuple[str, ...]] = (
    COL_USER_ID,
    "install_id",
    COL_INSTALL_TIME,
    COL_CAMPAIGN_ID,
    "adset_id",
    "creative_id",
    "channel",
    "country",
    "os",
    "device_model",
    "device_tier",
    "consent_tracking",
    "consent_marketing",
)

EVENTS_COLS: Final[Tuple[str, ...]] = (
    COL_USER_ID,
    COL_EVENT_TIME,
    "event_name",
    "session_id",
    "params",
)

PAYMENTS_COLS: Final[Tuple[str, ...]] = (
    COL_USER_ID,
    COL_TXN_TIME,
    "amount_usd",
    "product_sku",
    "payment_channel",
    "is_refund",
)

UA_COSTS_COLS: Final[Tuple[str, ...]] = (
    COL_CAMPAIGN_ID,
    "date",
    "spend",
    "impressions",
    "clicks",
    "installs",
)

LTV_COLS: Final[Tuple[str, ...]] = ("ltv_d7", "ltv_d30", "ltv_d60", "ltv_d90")
PAYER_COLS: Final[Tuple[str, ...]] = (
    "is_payer_by_d7",
    "is_payer_by_d30",
    "is_payer_by_d60",
    "is_payer_by_d90",
)

LABELS_COLS: Final[Tuple[str, ...]] = (
    COL_USER_ID,
    COL_INSTALL_DATE,
    COL_UA_COST,
    *LTV_COLS,
    *PAYER_COLS,
    "num_txn_d7",
    "first_purchase_time_hours",
    "profit_d90",
    "late_monetizer_flag",
    "false_early_payer_flag",
    "active_days_w7d",
    "sessions_cnt_w7d",
    "max_level_w7d",
)

PLTV_SCORES_COLS: Final[Tuple[str, ...]] = (
    COL_USER_ID,
    "pltv_pred",
    "pltv_decile",
    "is_top_1pct",
    "segment",
    "model_id",
    "model_type",
    "train_size",
    "test_size",
    "mae",
    "rmse",
    "r2",
)

# Scoring view of a label row (numeric only, plus channel for reporting)
FEATURE_COLS: Final[Tuple[str, ...]] = (
    "days_since_install",
    "sessions_cnt_w7d",
    "active_days_w7d",
    "max_level_w7d",
    "revenue_d7",
    "is_payer_by_d7",
    "num_txn_d7",
    "first_purchase_time_hours",
    "ua_cost",
    "device_tier_num",
    "os_num",
)

DEFAULT_MODEL_FEATURES: Final[Tuple[str, ...]] = (
    "sessions_cnt_w7d",
    "active_days_w7d",
    "max_level_w7d",
    "revenue_d7",
    "is_payer_by_d7",
    "num_txn_d7",
    "first_purchase_time_hours",
    "ua_cost",
    "device_tier_num",
    "os_num",
)

# Columns written with exactly two decimals
MONEY_COLS: Final[Tuple[str, ...]] = ("amount_usd", "spend", COL_UA_COST, *LTV_COLS, "profit_d90", "pltv_pred")

# Output file names, keyed by table
OUTPUT_FILES: Final[dict[str, str]] = {
    "players": "game-players.csv",
    "events": "game-events.csv",
    "payments": "game-payments.csv",
    "ua_costs": "game-ua-costs.csv",
    "labels": "game-labels.csv",
    "pltv_scores": "game-pltv-scores.csv",
}

TABLE_COLS: Final[dict[str, Tuple[str, ...]]] = {
    "players": PLAYERS_COLS,
    "events": EVENTS_COLS,
    "payments": PAYMENTS_COLS,
    "ua_costs": UA_COSTS_COLS,
    "labels": LABELS_COLS,
    "pltv_scores": PLTV_SCORES_COLS,
}
