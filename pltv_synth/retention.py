# pltv_synth/retention.py

"""
Day-by-day activity draws (D0..D30).

p(active on day d) = base * (1 - decay)^d * weekend * calendar * hazard, clamped
to [0.01, 1]. The hazard term shrinks the probability once a player has been
inactive for two or more consecutive days.
"""

# Import libraries and modules
from __future__ import annotations
from datetime import datetime, timezone
from typing import List

from .archetypes import RetentionParams
from .rng import SeededRandom
from .utils import MS_PER_DAY, MS_PER_HOUR, clamp, date_to_ms

EVENT_WEEK_START_MS = date_to_ms("2024-11-15")
EVENT_WEEK_END_MS = EVENT_WEEK_START_MS + 7 * MS_PER_DAY
PATCH_DAY_MS = date_to_ms("2024-12-05")

EVENT_WEEK_BOOST = 1.25
PATCH_DAY_BOOST = 1.15
HAZARD_SLOPE = 0.35

def is_weekend(day_ms: int) -> bool:
    return datetime.fromtimestamp(int(day_ms) // 1000, tz=timezone.utc).weekday() >= 5

def calendar_multiplier(day_ms: int) -> float:
    m = 1.0
    if EVENT_WEEK_START_MS <= day_ms < EVENT_WEEK_END_MS:
        m *= EVENT_WEEK_BOOST
    if abs(day_ms - PATCH_DAY_MS) < 12 * MS_PER_HOUR:
        m *= PATCH_DAY_BOOST
    return m

def inactivity_hazard(streak: int) -> float:
    if streak >= 2:
        return 1.0 / (1.0 + HAZARD_SLOPE * (streak - 1))
    return 1.0

def daily_active_probability(day: int, retention: RetentionParams, day_ms: int, streak: int) -> float:
    weekend = retention.weekend_boost if is_weekend(day_ms) else 1.0
    p = (
        retention.base
        * (1.0 - retention.decay) ** day
        * weekend
        * calendar_multiplier(day_ms)
        * inactivity_hazard(streak)
    )
    return clamp(p, 0.01, 1.0)

def simulate_activity(
    rng: SeededRandom,
    retention: RetentionParams,
    install_ms: int,
    n_days: int = 31,
) -> List[int]:
    """Ordered active day offsets since install."""
    active: List[int] = []
    streak = 0
    for day in range(n_days):
        day_ms = install_ms + day * MS_PER_DAY
        p = daily_active_probability(day, retention, day_ms, streak)
        if rng.next() < p:
            active.append(day)
            streak = 0
        else:
            streak += 1
    return active
