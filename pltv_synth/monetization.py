# pltv_synth/monetization.py

"""
Purchase decision, purchase timing, SKU choice, price and refunds for one
player, plus the LTV aggregation over the 7/30/60/90-day horizons.

LTV horizons are half-open: a transaction counts toward D<N> when
floor((txn_ms - install_ms) / 1 day) < N.
"""

# Import libraries and modules
from __future__ import annotations
from dataclasses import dataclass
from math import ceil, floor
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from .archetypes import Latents, country_arppu_shift
from .contracts import FALSE_STR, TRUE_STR
from .events import Milestones
from .players import Player
from .rng import SeededRandom
from .utils import MS_PER_DAY, MS_PER_HOUR, clamp, iso_ts

LTV_HORIZONS: Tuple[int, ...] = (7, 30, 60, 90)

PAYMENT_CHANNELS = ("google_play", "app_store", "paypal", "carrier_billing")

SKU_PRICE_LADDER: Mapping[str, Tuple[float, ...]] = {
    "starter_pack": (0.99, 1.99, 2.99, 4.99),
    "monthly_card": (4.99, 9.99),
    "battle_pass": (9.99, 19.99),
    "costume_box": (4.99, 9.99, 19.99),
    "gem_bundle": (4.99, 9.99, 19.99, 49.99, 99.99),
    "gacha_pack": (0.99, 4.99, 9.99, 19.99, 49.99),
}
DEFAULT_LADDER = (4.99, 9.99)
MIN_PRICE = 0.99
MAX_REFUND_P = 0.08

EARLY_BURST_SHARE = 0.55
MILESTONE_SHARE = 0.60
FALSE_EARLY_SHARE = 0.80
MILESTONE_CONTEXT_MS = 48 * MS_PER_HOUR

@dataclass(frozen=True)
class MonetizerFlags:
    late_monetizer: bool
    false_early_payer: bool

@dataclass(frozen=True)
class PurchaseContext:
    early: bool
    milestone: Optional[str]
    spender: float
    channel: str

@dataclass(frozen=True)
class Transaction:
    txn_ms: int
    amount_usd: float
    product_sku: str
    payment_channel: str
    is_refund: bool

    @property
    def net(self) -> float:
        return 0.0 if self.is_refund else self.amount_usd

@dataclass(frozen=True)
class PaymentAggregate:
    ltv_d7: float = 0.0
    ltv_d30: float = 0.0
    ltv_d60: float = 0.0
    ltv_d90: float = 0.0
    num_txn_d7: int = 0
    first_purchase_time_hours: float = 0.0
    late_monetizer: bool = False
    false_early_payer: bool = False

    @property
    def payer_flags(self) -> Dict[str, int]:
        return {
            "is_payer_by_d7": int(self.ltv_d7 > 0),
            "is_payer_by_d30": int(self.ltv_d30 > 0),
            "is_payer_by_d60": int(self.ltv_d60 > 0),
            "is_payer_by_d90": int(self.ltv_d90 > 0),
        }

# Who pays, and how often
def draw_monetizer_flags(
    rng: SeededRandom,
    latents: Latents,
    *,
    late_rate: float = 0.08,
    false_early_rate: float = 0.05,
) -> MonetizerFlags:
    late = rng.next() < late_rate and latents.engagement > 0.35 and latents.spender > 0.35
    false_early = rng.next() < false_early_rate and latents.spender > 0.45
    return MonetizerFlags(late_monetizer=late, false_early_payer=false_early)

def pay_probability(latents: Latents, *, late_monetizer: bool, consent_tracking: bool) -> float:
    p = clamp(0.02 + 0.85 * latents.spender + 0.15 * latents.engagement)
    if late_monetizer:
        p *= 0.75
    if not consent_tracking:
        p *= 0.95
    return p

def transaction_count(rng: SeededRandom, latents: Latents) -> int:
    base = round(1 + 6 * latents.spender + 2 * latents.engagement + rng.normal())
    return int(clamp(base, 0, 18))

# Timing
def _within_first_48h(rng: SeededRandom, install_ms: int) -> int:
    return install_ms + rng.int(0, 48) * MS_PER_HOUR + rng.int(0, 3599) * 1000

def _on_day(rng: SeededRandom, install_ms: int, lo: int, hi: int) -> int:
    return install_ms + rng.int(lo, hi) * MS_PER_DAY + rng.int(0, 86399) * 1000

def purchase_schedule(
    rng: SeededRandom,
    install_ms: int,
    n: int,
    milestones: Milestones,
    flags: MonetizerFlags,
) -> List[int]:
    """Sorted purchase timestamps: early burst, milestone-anchored, then long tail."""
    times: List[int] = []
    early_n = int(floor(n * EARLY_BURST_SHARE))
    rest_n = n - early_n

    for _ in range(early_n):
        times.append(_within_first_48h(rng, install_ms))

    slots = milestones.slots()
    milestone_n = min(rest_n, int(floor(rest_n * MILESTONE_SHARE)) if slots else 0)
    for _ in range(milestone_n):
        anchor_ms, _kind = rng.pick(slots)
        times.append(anchor_ms + rng.int(0, 6) * MS_PER_HOUR + rng.int(0, 3600) * 1000)

    for _ in range(rest_n - milestone_n):
        times.append(_on_day(rng, install_ms, 8, 89))

    times.sort()

    if flags.late_monetizer:
        # nothing may land inside the first week
        times = sorted(
            _on_day(rng, install_ms, 14, 60) if (t - install_ms) // MS_PER_DAY <= 6 else t
            for t in times
        )

    if flags.false_early_payer:
        n_early = int(ceil(len(times) * FALSE_EARLY_SHARE))
        times = sorted(
            _within_first_48h(rng, install_ms) if idx < n_early else _on_day(rng, install_ms, 3, 10)
            for idx in range(len(times))
        )

    return times

# SKU policy
@dataclass(frozen=True)
class SkuRule:
    name: str
    applies: Callable[[PurchaseContext], bool]
    probability: float
    sku: str

SKU_RULES: Tuple[SkuRule, ...] = (
    SkuRule("influencer_costume", lambda c: c.channel == "influencer", 0.35, "costume_box"),
    SkuRule("early_starter", lambda c: c.early, 0.55, "starter_pack"),
    SkuRule("level20_pass", lambda c: c.milestone == "level20", 0.60, "battle_pass"),
    SkuRule("dungeon_gacha", lambda c: c.milestone == "dungeon", 0.55, "gacha_pack"),
    SkuRule("high_spender_gems", lambda c: c.spender > 0.75, 0.60, "gem_bundle"),
    SkuRule("monthly_card", lambda c: True, 0.25, "monthly_card"),
    SkuRule("gacha_fallback", lambda c: True, 0.35, "gacha_pack"),
)
DEFAULT_SKU = "gem_bundle"

def pick_sku_by_context(
    rng: SeededRandom,
    ctx: PurchaseContext,
    rules: Sequence[SkuRule] = SKU_RULES,
    default: str = DEFAULT_SKU,
) -> str:
    """First rule whose predicate holds and whose coin flip succeeds; `default` otherwise."""
    for rule in rules:
        if rule.applies(ctx) and rng.next() < rule.probability:
            return rule.sku
    return default

def purchase_context(
    txn_ms: int,
    install_ms: int,
    milestones: Milestones,
    spender: float,
    channel: str,
) -> PurchaseContext:
    days = (txn_ms - install_ms) // MS_PER_DAY
    milestone = None
    for ms, kind in (
        (milestones.level20_ms, "level20"),
        (milestones.first_dungeon_ms, "dungeon"),
        (milestones.first_guild_ms, "guild"),
    ):
        if ms is not None and abs(txn_ms - ms) < MILESTONE_CONTEXT_MS:
            milestone = kind
            break
    return PurchaseContext(early=days <= 2, milestone=milestone, spender=spender, channel=channel)

# Price and refunds
def sample_txn_amount(rng: SeededRandom, sku: str, spender: float, country: str) -> float:
    base = rng.pick(SKU_PRICE_LADDER.get(sku, DEFAULT_LADDER))
    mult = 1 + (spender - 0.5) * 0.35 + country_arppu_shift(country) * 0.15
    noisy = base * mult * (1 + rng.normal() * 0.06)
    return max(MIN_PRICE, round(noisy, 2))

def refund_probability(sku: str, payment_channel: str) -> float:
    p = 0.008
    if payment_channel == "paypal":
        p += 0.01
    if payment_channel == "carrier_billing":
        p += 0.015
    if sku == "gacha_pack":
        p += 0.01
    if sku == "gem_bundle":
        p += 0.005
    return clamp(p, 0.0, MAX_REFUND_P)

# Aggregation
def aggregate_ltv(install_ms: int, txns: Sequence[Transaction], flags: MonetizerFlags) -> PaymentAggregate:
    ltv = {h: 0.0 for h in LTV_HORIZONS}
    txn_d7 = 0
    first_hours: Optional[float] = None

    for t in sorted(txns, key=lambda x: x.txn_ms):
        days = (t.txn_ms - install_ms) // MS_PER_DAY
        net = t.net
        if net > 0 and first_hours is None:
            first_hours = round((t.txn_ms - install_ms) / MS_PER_HOUR, 2)
        for h in LTV_HORIZONS:
            if days < h:
                ltv[h] += net
        if days < 7 and net > 0:
            txn_d7 += 1

    return PaymentAggregate(
        ltv_d7=round(ltv[7], 2),
        ltv_d30=round(ltv[30], 2),
        ltv_d60=round(ltv[60], 2),
        ltv_d90=round(ltv[90], 2),
        num_txn_d7=txn_d7,
        first_purchase_time_hours=first_hours if first_hours is not None else 0.0,
        late_monetizer=flags.late_monetizer,
        false_early_payer=flags.false_early_payer,
    )

def transaction_row(user_id: str, t: Transaction) -> Dict[str, object]:
    return {
        "game_user_id": user_id,
        "txn_time": iso_ts(t.txn_ms),
        "amount_usd": t.amount_usd,
        "product_sku": t.product_sku,
        "payment_channel": t.payment_channel,
        "is_refund": TRUE_STR if t.is_refund else FALSE_STR,
    }

def simulate_payments(
    rng: SeededRandom,
    player: Player,
    latents: Latents,
    milestones: Milestones,
    *,
    late_rate: float = 0.08,
    false_early_rate: float = 0.05,
) -> Tuple[List[Transaction], PaymentAggregate]:
    """Full monetization pass for one player."""
    flags = draw_monetizer_flags(rng, latents, late_rate=late_rate, false_early_rate=false_early_rate)
    p_pay = pay_probability(latents, late_monetizer=flags.late_monetizer, consent_tracking=player.consent_tracking)
    will_pay = rng.next() < p_pay
    n_txn = transaction_count(rng, latents)

    if not will_pay or n_txn == 0:
        return [], aggregate_ltv(player.install_ms, [], flags)

    txns: List[Transaction] = []
    for txn_ms in purchase_schedule(rng, player.install_ms, n_txn, milestones, flags):
        ctx = purchase_context(txn_ms, player.install_ms, milestones, latents.spender, player.channel)
        sku = pick_sku_by_context(rng, ctx)
        channel = rng.pick(PAYMENT_CHANNELS)
        amount = sample_txn_amount(rng, sku, latents.spender, player.country)
        is_refund = rng.next() < refund_probability(sku, channel)
        txns.append(Transaction(txn_ms, amount, sku, channel, is_refund))

    return txns, aggregate_ltv(player.install_ms, txns, flags)
