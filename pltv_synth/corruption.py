# pltv_synth/corruption.py

"""
Inject telemetry-pipeline defects into finished event/payment tables.

Every injected count is floor(clean size * rate) and source rows are always
drawn from the clean table, so the rates do not compound. Both tables are
shuffled afterwards so the dirty rows are interleaved with the clean ones.
"""

# Import libraries and modules
from __future__ import annotations
from typing import Dict, List, Tuple

import pandas as pd

from .config import CorruptionRates
from .contracts import COL_EVENT_TIME, COL_USER_ID
from .rng import SeededRandom
from .utils import MS_PER_DAY, iso_ts, to_utc, ts_to_ms

BAD_TIMESTAMPS = ("", "NaN", "1970-01-01T00:00:00.000Z", "invalid-date", "2099-12-31T23:59:59Z")
LATE_SHIFT_DAYS = (30, 90)

def _draw_rows(rng: SeededRandom, records: List[dict], k: int) -> List[dict]:
    n = len(records)
    if n == 0 or k <= 0:
        return []
    return [dict(records[rng.int(0, n - 1)]) for _ in range(k)]

def shuffle_frame(rng: SeededRandom, df: pd.DataFrame) -> pd.DataFrame:
    order = list(range(len(df)))
    rng.shuffle(order)
    return df.iloc[order].reset_index(drop=True)

def corrupt_tables(
    rng: SeededRandom,
    events: pd.DataFrame,
    payments: pd.DataFrame,
    rates: CorruptionRates = CorruptionRates(),
) -> Tuple[pd.DataFrame, pd.DataFrame, Dict[str, int]]:
    """Return (dirty_events, dirty_payments, injected-count report)."""
    n_events = len(events)
    n_payments = len(payments)
    counts = {
        "dup_events": int(n_events * rates.dup_events),
        "late_events": int(n_events * rates.late_events),
        "bad_timestamps": int(n_events * rates.bad_timestamps),
        "missing_user_ids": int(n_events * rates.missing_user_ids),
        "dup_payments": int(n_payments * rates.dup_payments),
    }

    ## Events
    event_records = events.to_dict("records")
    injected: List[dict] = []
    injected.extend(_draw_rows(rng, event_records, counts["dup_events"]))

    late_rows = _draw_rows(rng, event_records, counts["late_events"])
    shifts = [rng.int(*LATE_SHIFT_DAYS) for _ in late_rows]
    orig = to_utc(pd.Series([r[COL_EVENT_TIME] for r in late_rows], dtype=object))
    if orig.isna().any():
        bad = [r[COL_EVENT_TIME] for r, ts in zip(late_rows, orig) if pd.isna(ts)][:5]
        raise ValueError(f"Clean event rows have unparseable timestamps: {bad}")
    for row, ts, shift in zip(late_rows, orig, shifts):
        row[COL_EVENT_TIME] = iso_ts(ts_to_ms(ts) + shift * MS_PER_DAY)
        injected.append(row)

    for row in _draw_rows(rng, event_records, counts["bad_timestamps"]):
        row[COL_EVENT_TIME] = rng.pick(BAD_TIMESTAMPS)
        injected.append(row)

    for row in _draw_rows(rng, event_records, counts["missing_user_ids"]):
        row[COL_USER_ID] = ""
        injected.append(row)

    dirty_events = events
    if injected:
        dirty_events = pd.concat([events, pd.DataFrame(injected, columns=events.columns)], ignore_index=True)

    ## Payments
    dup_pay = _draw_rows(rng, payments.to_dict("records"), counts["dup_payments"])
    dirty_payments = payments
    if dup_pay:
        dirty_payments = pd.concat([payments, pd.DataFrame(dup_pay, columns=payments.columns)], ignore_index=True)

    dirty_events = shuffle_frame(rng, dirty_events)
    dirty_payments = shuffle_frame(rng, dirty_payments)

    report = {
        "clean_events": n_events,
        "clean_payments": n_payments,
        **counts,
        "dirty_events": len(dirty_events),
        "dirty_payments": len(dirty_payments),
    }
    return dirty_events, dirty_payments, report
