# pltv_synth/diagnostics.py

"""
Cleaning pipeline for the dirty telemetry tables, and the data-quality report
it produces. This is the consumer-side mirror of corruption.py: exact
duplicates are removed, unparseable / pre-install / beyond-window timestamps
are quarantined, refunds and duplicate transactions are netted out, and daily
event volume is screened for anomalies.
"""

# Import libraries and modules
from __future__ import annotations
from typing import Any, Dict, Tuple

import numpy as np
import pandas as pd

from .contracts import COL_EVENT_TIME, COL_USER_ID, TRUE_STR
from .utils import to_utc

EVENT_DEDUP_KEY = (COL_USER_ID, "session_id", COL_EVENT_TIME, "event_name")
CLOCK_DRIFT = pd.Timedelta(hours=1)
ANOMALY_Z = 2.0

def _blank(s: pd.Series) -> pd.Series:
    return s.isna() | s.astype(str).str.strip().eq("")

def schema_null_counts(events: pd.DataFrame) -> Dict[str, int]:
    return {
        "null_user_ids": int(_blank(events[COL_USER_ID]).sum()),
        "null_event_names": int(_blank(events["event_name"]).sum()),
        "null_timestamps": int(_blank(events[COL_EVENT_TIME]).sum()),
        "missing_session_ids": int(_blank(events["session_id"]).sum()),
    }

def daily_volume(events: pd.DataFrame) -> pd.DataFrame:
    """Events per calendar day with a z-score against the mean day."""
    if events.empty:
        return pd.DataFrame(columns=["date", "count", "zscore"])
    dates = to_utc(events[COL_EVENT_TIME]).dropna().dt.strftime("%Y-%m-%d")
    out = dates.value_counts().sort_index().rename_axis("date").reset_index(name="count")
    counts = out["count"].to_numpy(dtype=float)
    std = float(counts.std())
    out["zscore"] = np.round((counts - counts.mean()) / std, 2) if std > 0 else 0.0
    return out

def run_cleaning_pipeline(
    players: pd.DataFrame,
    events: pd.DataFrame,
    payments: pd.DataFrame,
    *,
    late_window_days: int = 90,
) -> Tuple[pd.DataFrame, pd.DataFrame, Dict[str, Any]]:
    """Return (clean_events, clean_payments, report)."""
    ## 1. Deduplication
    dup_mask = events.duplicated(subset=list(EVENT_DEDUP_KEY), keep="first")
    deduped = events.loc[~dup_mask].copy()

    ## 2. Identity + timestamps
    no_user = _blank(deduped[COL_USER_ID])
    install_ts = to_utc(players.set_index(COL_USER_ID)["install_time"])
    event_ts = to_utc(deduped[COL_EVENT_TIME])
    inst = pd.to_datetime(deduped[COL_USER_ID].map(install_ts), utc=True)

    malformed = event_ts.isna()
    has_both = ~malformed & inst.notna()
    before_install = has_both & (event_ts < inst - CLOCK_DRIFT)
    beyond_window = has_both & (event_ts - inst > pd.Timedelta(days=late_window_days))

    keep = ~(no_user | malformed | before_install | beyond_window)
    clean_events = deduped.loc[keep].reset_index(drop=True)

    ## 3. Revenue
    dup_pay_mask = payments.duplicated(keep="first")
    pay = payments.loc[~dup_pay_mask]
    amount = pd.to_numeric(pay["amount_usd"], errors="coerce").fillna(0.0)
    refund = pay["is_refund"].astype(str).str.lower().eq(TRUE_STR)
    gross = round(float(amount.sum()), 2)
    refund_amount = round(float(amount[refund].sum()), 2)
    clean_payments = pay.loc[~refund].reset_index(drop=True)

    ## 4. Volume
    volume = daily_volume(clean_events)
    anomalies = volume.loc[volume["zscore"].abs() > ANOMALY_Z] if not volume.empty else volume

    consent = players["consent_tracking"].astype(str).str.lower().eq(TRUE_STR)
    report: Dict[str, Any] = {
        "raw_event_count": int(len(events)),
        "deduped_event_count": int(len(deduped)),
        "duplicates_removed": int(dup_mask.sum()),
        "missing_user_id_removed": int(no_user.sum()),
        "malformed_timestamps_quarantined": int((malformed & ~no_user).sum()),
        "late_events_quarantined": int(((before_install | beyond_window) & ~no_user).sum()),
        "clean_event_count": int(len(clean_events)),
        **schema_null_counts(events),
        "total_players": int(len(players)),
        "players_with_consent": int(consent.sum()),
        "players_without_consent": int((~consent).sum()),
        "total_txn": int(len(payments)),
        "duplicate_txn_removed": int(dup_pay_mask.sum()),
        "refund_count": int(refund.sum()),
        "gross_revenue_usd": gross,
        "refund_amount_usd": refund_amount,
        "net_revenue_usd": round(gross - refund_amount, 2),
        "avg_events_per_day": float(volume["count"].mean()) if not volume.empty else 0.0,
        "volume_anomalies": anomalies.reset_index(drop=True),
    }
    return clean_events, clean_payments, report

def cleaning_report_df(report: Dict[str, Any]) -> pd.DataFrame:
    """Scalar part of the cleaning report as a two-column table."""
    rows = [{"metric": k, "value": v} for k, v in report.items() if not isinstance(v, pd.DataFrame)]
    return pd.DataFrame(rows, columns=["metric", "value"])
