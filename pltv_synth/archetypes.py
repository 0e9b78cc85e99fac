# pltv_synth/archetypes.py

"""
Player archetypes and the latent "personality" drawn for every simulated player.

An archetype fixes the shape of the retention curve and the priors of two
latent traits (engagement, spender). Acquisition covariates (channel, country,
device tier) shift the spender prior, and the squashed latents feed four
behavioural propensities that parameterise every later draw.
"""

# Import libraries and modules
from __future__ import annotations
from dataclasses import dataclass
from typing import Mapping, Sequence, Tuple

from .rng import SeededRandom
from .utils import clamp, sigmoid

@dataclass(frozen=True)
class RetentionParams:
    base: float
    decay: float
    weekend_boost: float

@dataclass(frozen=True)
class Archetype:
    name: str
    weight: float
    level_range: Tuple[int, int]
    guild_p: float
    retention: RetentionParams
    spend_prior: float
    engage_prior: float

@dataclass(frozen=True)
class Latents:
    engagement: float
    spender: float

@dataclass(frozen=True)
class Propensities:
    pay: float
    social: float
    grind: float
    compete: float

ARCHETYPES: Tuple[Archetype, ...] = (
    Archetype("whale", 0.03, (40, 70), 0.95, RetentionParams(0.95, 0.02, 1.20), spend_prior=1.7, engage_prior=1.2),
    Archetype("dolphin", 0.12, (25, 50), 0.70, RetentionParams(0.80, 0.05, 1.15), spend_prior=0.9, engage_prior=0.8),
    Archetype("minnow", 0.15, (15, 35), 0.40, RetentionParams(0.65, 0.08, 1.10), spend_prior=0.3, engage_prior=0.5),
    Archetype("free_engaged", 0.25, (20, 45), 0.50, RetentionParams(0.70, 0.06, 1.20), spend_prior=-0.6, engage_prior=0.9),
    Archetype("free_casual", 0.30, (5, 20), 0.10, RetentionParams(0.45, 0.12, 1.05), spend_prior=-1.2, engage_prior=-0.2),
    Archetype("churned", 0.15, (2, 10), 0.02, RetentionParams(0.20, 0.25, 1.00), spend_prior=-1.5, engage_prior=-1.0),
)

# Per-player retention jitter (std dev) and clamp ranges
RETENTION_JITTER_SD = RetentionParams(base=0.03, decay=0.006, weekend_boost=0.03)
BASE_RANGE = (0.05, 0.99)
DECAY_RANGE = (0.005, 0.35)
WEEKEND_RANGE = (1.0, 1.4)

# Covariate shifts on the spender latent
CHANNEL_SPEND_SHIFT: Mapping[str, float] = {
    "influencer": 0.25,
    "meta_ads": 0.15,
    "google_uac": -0.05,
}
DEFAULT_CHANNEL_SHIFT = 0.05

COUNTRY_ARPPU_SHIFT: Mapping[str, float] = {
    "KR": 0.35,
    "JP": 0.25,
    "US": 0.15,
    "BR": -0.10,
    "TH": -0.05,
}

DEVICE_TIER_SHIFT: Mapping[str, float] = {
    "high": 0.20,
    "mid": 0.05,
    "low": -0.10,
}

def channel_spend_shift(channel: str) -> float:
    return CHANNEL_SPEND_SHIFT.get(channel, DEFAULT_CHANNEL_SHIFT)

def country_arppu_shift(country: str) -> float:
    return COUNTRY_ARPPU_SHIFT.get(country, 0.0)

def device_tier_shift(tier: str) -> float:
    return DEVICE_TIER_SHIFT.get(tier, DEVICE_TIER_SHIFT["low"])

# Selection
def pick_archetype(rng: SeededRandom, archetypes: Sequence[Archetype] = ARCHETYPES) -> Archetype:
    """Cumulative-weight draw.

    Weights are renormalized so tables that drift off 1.0 still cover the whole
    unit interval. If float rounding leaves the draw unmatched, the most
    populous archetype is returned.
    """
    if not archetypes:
        raise ValueError("archetypes must be non-empty")
    total = sum(a.weight for a in archetypes)
    r = rng.next()
    if total <= 0:
        return max(archetypes, key=lambda a: a.weight)

    cum = 0.0
    for a in archetypes:
        cum += a.weight / total
        if r < cum:
            return a
    return max(archetypes, key=lambda a: a.weight)

def sample_retention(rng: SeededRandom, archetype: Archetype) -> RetentionParams:
    """Archetype retention plus idiosyncratic Gaussian jitter, clamped to safe ranges."""
    base_p = archetype.retention
    sd = RETENTION_JITTER_SD
    return RetentionParams(
        base=clamp(base_p.base + rng.normal() * sd.base, *BASE_RANGE),
        decay=clamp(base_p.decay + rng.normal() * sd.decay, *DECAY_RANGE),
        weekend_boost=clamp(base_p.weekend_boost + rng.normal() * sd.weekend_boost, *WEEKEND_RANGE),
    )

# Latents and propensities
def generate_latents(
    rng: SeededRandom,
    archetype: Archetype,
    channel: str,
    country: str,
    device_tier: str,
) -> Latents:
    engage = archetype.engage_prior + rng.normal() * 0.35
    spend = (
        archetype.spend_prior
        + rng.normal() * 0.45
        + channel_spend_shift(channel)
        + country_arppu_shift(country)
        + device_tier_shift(device_tier)
    )
    return Latents(engagement=clamp(sigmoid(engage)), spender=clamp(sigmoid(spend)))

def latents_to_propensities(rng: SeededRandom, latents: Latents) -> Propensities:
    e, s = latents.engagement, latents.spender
    grind = clamp(0.55 * e + 0.10 * s + rng.normal() * 0.08)
    pay = clamp(0.25 * e + 0.75 * s + rng.normal() * 0.06)
    social = clamp(0.55 * e + 0.15 * s + rng.normal() * 0.10)
    compete = clamp(0.50 * e + rng.normal() * 0.10)
    return Propensities(pay=pay, social=social, grind=grind, compete=compete)
