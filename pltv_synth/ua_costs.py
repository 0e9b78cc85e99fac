# pltv_synth/ua_costs.py

"""
Daily synthetic ad spend per campaign, and the (campaign, date) -> CPI lookup
used to attribute an install cost to each tracked player.
"""

# Import libraries and modules
from __future__ import annotations
from typing import Dict, Mapping, Sequence, Tuple

import pandas as pd

from .players import CAMPAIGNS
from .rng import SeededRandom
from .utils import MS_PER_DAY, iso_date

# (spend multiplier, cpi multiplier) keyed by a campaign-name fragment
CAMPAIGN_MULTIPLIERS: Mapping[str, Tuple[float, float]] = {
    "launch_kr": (1.25, 1.15),
    "retarget": (0.85, 1.05),
    "brand": (1.10, 1.25),
}
MIN_CPI = 0.6

def generate_ua_costs(
    rng: SeededRandom,
    *,
    base_ms: int,
    n_days: int,
    campaigns: Sequence[str] = CAMPAIGNS,
) -> pd.DataFrame:
    """One row per campaign x day with spend, impressions, clicks and installs."""
    rows = []
    for campaign in campaigns:
        for d in range(n_days):
            spend = rng.float(800, 7000)
            cpi = rng.float(1.2, 10)
            for fragment, (spend_mult, cpi_mult) in CAMPAIGN_MULTIPLIERS.items():
                if fragment in campaign:
                    spend *= spend_mult
                    cpi *= cpi_mult

            spend = round(spend, 2)
            cpi = max(MIN_CPI, round(cpi, 2))
            installs = max(0, round(spend / cpi))

            rows.append(
                {
                    "campaign_id": campaign,
                    "date": iso_date(base_ms + d * MS_PER_DAY),
                    "spend": spend,
                    "impressions": installs * rng.int(40, 220),
                    "clicks": installs * rng.int(2, 18),
                    "installs": installs,
                }
            )

    return pd.DataFrame(rows, columns=["campaign_id", "date", "spend", "impressions", "clicks", "installs"])

def build_cpi_lookup(ua_costs: pd.DataFrame) -> Dict[Tuple[str, str], float]:
    """(campaign_id, date) -> spend / installs, 0.0 when there were no installs."""
    lookup: Dict[Tuple[str, str], float] = {}
    for r in ua_costs.itertuples(index=False):
        installs = float(r.installs)
        lookup[(str(r.campaign_id), str(r.date))] = float(r.spend) / installs if installs > 0 else 0.0
    return lookup
