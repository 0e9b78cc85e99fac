# pltv_synth/utils.py

from __future__ import annotations
from datetime import datetime, timezone

import pandas as pd
from scipy.special import expit

MS_PER_HOUR = 3_600_000
MS_PER_DAY = 86_400_000

def clamp(x: float, lo: float = 0.0, hi: float = 1.0) -> float:
    return max(lo, min(hi, x))

def sigmoid(x: float) -> float:
    return float(expit(x))

def date_to_ms(day: str) -> int:
    """'YYYY-MM-DD' (UTC midnight) -> epoch milliseconds."""
    d = datetime.strptime(day, "%Y-%m-%d").replace(tzinfo=timezone.utc)
    return int(d.timestamp()) * 1000

def iso_ts(ms: int) -> str:
    """Epoch ms -> ISO-8601 'Z' timestamp; the millisecond part is dropped when it is zero."""
    ms = int(ms)
    d = datetime.fromtimestamp(ms // 1000, tz=timezone.utc)
    base = d.strftime("%Y-%m-%dT%H:%M:%S")
    frac = ms % 1000
    return f"{base}.{frac:03d}Z" if frac else f"{base}Z"

def iso_date(ms: int) -> str:
    return datetime.fromtimestamp(int(ms) // 1000, tz=timezone.utc).strftime("%Y-%m-%d")

def to_utc(values: pd.Series) -> pd.Series:
    """ISO 'Z' timestamps -> tz-aware UTC datetimes; anything malformed becomes NaT."""
    return pd.to_datetime(values, utc=True, format="ISO8601", errors="coerce")

def ts_to_ms(ts: pd.Timestamp) -> int:
    return int(ts.value // 1_000_000)
