# pltv_synth/players.py

"""
Acquisition context for one simulated player and the per-player profile
(archetype, retention, latents, propensities) that drives every later draw.
"""

# Import libraries and modules
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict

from .archetypes import (
    Archetype,
    Latents,
    Propensities,
    RetentionParams,
    generate_latents,
    latents_to_propensities,
    pick_archetype,
    sample_retention,
)
from .contracts import FALSE_STR, TRUE_STR, UNKNOWN
from .rng import SeededRandom
from .utils import MS_PER_DAY, MS_PER_HOUR, iso_date, iso_ts

CHANNELS = ("meta_ads", "google_uac", "tiktok", "unity_ads", "organic", "influencer")
COUNTRIES = ("US", "KR", "JP", "TW", "TH", "BR", "DE", "RU")
OS_LIST = ("android", "ios")
DEVICES_ANDROID = ("Samsung Galaxy S24", "Xiaomi 14", "OPPO Find X7", "Pixel 8", "OnePlus 12")
DEVICES_IOS = ("iPhone 15 Pro", "iPhone 14", "iPhone 13", "iPad Pro 12.9")
DEVICE_TIERS = ("low", "mid", "high")
CAMPAIGNS = (
    "l2m_launch_kr",
    "l2m_retarget_us",
    "l2m_broad_sea",
    "l2m_lookalike_jp",
    "l2m_video_tw",
    "l2m_brand_global",
)
ADSETS = ("high_spender_lal", "broad_male_25_44", "rpg_interest", "mmorpg_gamers", "new_installer_ret")
CREATIVES = ("cinematic_trailer", "gameplay_boss", "pvp_highlight", "gacha_reveal", "guild_war_cg")

CONSENT_TRACKING_OPT_OUT = 0.15
CONSENT_MARKETING_OPT_OUT = 0.25

@dataclass(frozen=True)
class Player:
    game_user_id: str
    install_id: str
    install_ms: int
    campaign_id: str
    adset_id: str
    creative_id: str
    channel: str
    country: str
    os: str
    device_model: str
    device_tier: str
    consent_tracking: bool
    consent_marketing: bool

    @property
    def install_date(self) -> str:
        return iso_date(self.install_ms)

    def to_row(self) -> Dict[str, str]:
        return {
            "game_user_id": self.game_user_id,
            "install_id": self.install_id,
            "install_time": iso_ts(self.install_ms),
            "campaign_id": self.campaign_id,
            "adset_id": self.adset_id,
            "creative_id": self.creative_id,
            "channel": self.channel,
            "country": self.country,
            "os": self.os,
            "device_model": self.device_model,
            "device_tier": self.device_tier,
            "consent_tracking": TRUE_STR if self.consent_tracking else FALSE_STR,
            "consent_marketing": TRUE_STR if self.consent_marketing else FALSE_STR,
        }

@dataclass(frozen=True)
class PlayerProfile:
    index: int
    player: Player
    archetype: Archetype
    retention: RetentionParams
    latents: Latents
    propensities: Propensities
    max_level: int

def user_id_for(index: int) -> str:
    return f"player_{index + 1:05d}"

def draw_player(rng: SeededRandom, index: int, *, base_ms: int, install_window_days: int) -> Player:
    """Draw install time, attribution, device and consent for player `index` (0-based)."""
    os_name = rng.pick(OS_LIST)
    device = rng.pick(DEVICES_IOS) if os_name == "ios" else rng.pick(DEVICES_ANDROID)
    channel = rng.pick(CHANNELS)
    country = rng.pick(COUNTRIES)
    install_offset = rng.int(0, install_window_days - 1)
    install_hour = rng.int(0, 23)
    install_ms = base_ms + install_offset * MS_PER_DAY + install_hour * MS_PER_HOUR

    install_id = f"i_{rng.int(100000, 999999)}"
    device_tier = rng.pick(DEVICE_TIERS)
    consent_tracking = rng.next() > CONSENT_TRACKING_OPT_OUT
    consent_marketing = rng.next() > CONSENT_MARKETING_OPT_OUT

    # Attribution ids only survive when tracking consent was given
    campaign_id = rng.pick(CAMPAIGNS) if consent_tracking else UNKNOWN
    adset_id = rng.pick(ADSETS) if consent_tracking else UNKNOWN
    creative_id = rng.pick(CREATIVES) if consent_tracking else UNKNOWN

    return Player(
        game_user_id=user_id_for(index),
        install_id=install_id,
        install_ms=install_ms,
        campaign_id=campaign_id,
        adset_id=adset_id,
        creative_id=creative_id,
        channel=channel,
        country=country,
        os=os_name,
        device_model=device,
        device_tier=device_tier,
        consent_tracking=consent_tracking,
        consent_marketing=consent_marketing,
    )

def draw_profile(rng: SeededRandom, index: int, player: Player) -> PlayerProfile:
    archetype = pick_archetype(rng)
    retention = sample_retention(rng, archetype)
    latents = generate_latents(rng, archetype, player.channel, player.country, player.device_tier)
    propensities = latents_to_propensities(rng, latents)
    lo, hi = archetype.level_range
    return PlayerProfile(
        index=index,
        player=player,
        archetype=archetype,
        retention=retention,
        latents=latents,
        propensities=propensities,
        max_level=rng.int(lo, hi),
    )
