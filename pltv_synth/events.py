# pltv_synth/events.py

"""
Session scheduling and gameplay event synthesis under a global event budget.

One EventBudget is shared by every player of a run. Each write attempt is
either dropped (transport loss, consumes nothing), written once, or written
twice (client re-delivery, both rows count). Once the cap is reached no more
events are written for anyone, but the caller keeps generating players.
Milestones (first dungeon, level 20, first guild) are recorded only when the
event that reaches them is actually written.
"""

# Import libraries and modules
from __future__ import annotations
from dataclasses import dataclass, field
from math import floor
from typing import Callable, List, Optional, Sequence, Tuple

import pandas as pd

from .config import MessRates
from .contracts import EVENTS_COLS
from .players import PlayerProfile, user_id_for
from .rng import SeededRandom
from .utils import MS_PER_DAY, MS_PER_HOUR, clamp, iso_ts

EventRow = Tuple[str, str, str, str, str]

SOFT_SOURCES = ("quest", "dungeon", "daily", "sell", "arena")
SPEND_TARGETS = ("gear", "skill", "tp", "revive", "shop")
GACHA_TYPES = ("weapon", "armor", "pet", "costume")
DUNGEON_NAMES = ("cruma", "dragon_v", "ant_nest", "tower_ins", "forge", "plains")
CHAT_CHANNELS = ("world", "guild", "party", "whisper", "trade")
GUILD_ACTIVITIES = ("boss", "war", "quest", "donate", "buff")
SHOP_SECTIONS = ("featured", "daily", "gem", "costume", "equip")
MOB_NAMES = ("orc", "skeleton", "goblin", "dragonling", "bandit", "golem", "wraith")
SKILLS = ("slash", "fireball", "pierce", "heal", "stun", "whirlwind", "shield_bash")
ITEMS = ("hp_potion", "mp_potion", "scroll_tp", "rare_gem", "craft_mat", "enhance_stone")

FillerFn = Callable[[SeededRandom], Tuple[str, str]]

FILLER_EVENTS: Tuple[FillerFn, ...] = (
    lambda r: ("combat_hit", f"mob={r.pick(MOB_NAMES)};skill={r.pick(SKILLS)};dmg={r.int(20, 500)}"),
    lambda r: ("mob_kill", f"mob={r.pick(MOB_NAMES)};xp={r.int(50, 5000)}"),
    lambda r: ("item_loot", f"item={r.pick(ITEMS)};qty={r.int(1, 5)}"),
    lambda r: ("skill_cast", f"skill={r.pick(SKILLS)};mp={r.int(1, 40)}"),
    lambda r: ("move_zone", f"zone={r.pick(DUNGEON_NAMES)};dist={r.int(10, 800)}"),
)

# Budget and sink
class EventSink:
    """Sequential append-only store of event rows for one run."""

    def __init__(self) -> None:
        self.rows: List[EventRow] = []

    def append(self, row: EventRow) -> None:
        self.rows.append(row)

    def __len__(self) -> int:
        return len(self.rows)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.rows, columns=list(EVENTS_COLS))

@dataclass
class EventBudget:
    cap: int
    written: int = 0
    dropped: int = 0
    duplicated: int = 0

    def remaining_capacity(self) -> int:
        return max(0, self.cap - self.written)

    @property
    def exhausted(self) -> bool:
        return self.written >= self.cap

    def write(self, sink: EventSink, row: EventRow, rng: SeededRandom, mess: MessRates) -> int:
        """Attempt one write; returns the number of rows actually appended (0, 1 or 2)."""
        if self.exhausted:
            return 0
        if rng.next() < mess.drop_rate:
            self.dropped += 1
            return 0

        sink.append(row)
        self.written += 1
        if rng.next() < mess.dup_rate and not self.exhausted:
            sink.append(row)
            self.written += 1
            self.duplicated += 1
            return 2
        return 1

def player_event_budget(budget: EventBudget, remaining_players: int, floor_: int = 250) -> int:
    """Fair share of what is left, so early players cannot drain the whole cap."""
    remaining_players = max(1, remaining_players)
    return max(floor_, budget.remaining_capacity() // remaining_players)

# Milestones
@dataclass
class Milestones:
    """Write-once timestamps that later anchor purchase timing."""

    first_dungeon_ms: Optional[int] = None
    level20_ms: Optional[int] = None
    first_guild_ms: Optional[int] = None

    def mark(self, name: str, ms: int) -> bool:
        attr = f"{name}_ms"
        if not hasattr(self, attr):
            raise KeyError(f"Unknown milestone: {name}")
        if getattr(self, attr) is not None:
            return False
        setattr(self, attr, int(ms))
        return True

    def slots(self) -> List[Tuple[int, str]]:
        out: List[Tuple[int, str]] = []
        if self.first_dungeon_ms is not None:
            out.append((self.first_dungeon_ms, "dungeon"))
        if self.level20_ms is not None:
            out.append((self.level20_ms, "level20"))
        if self.first_guild_ms is not None:
            out.append((self.first_guild_ms, "guild"))
        return out

# Sessions
def schedule_sessions(rng: SeededRandom, active_days: Sequence[int], engagement: float) -> List[int]:
    """One entry (the day offset) per session."""
    sessions: List[int] = []
    for day in active_days:
        base = 1 + int(floor(engagement * 2.2))
        n = int(clamp(base + (1 if rng.next() < 0.15 else 0), 1, 4))
        sessions.extend([day] * n)
    return sessions

@dataclass(frozen=True)
class WeekOneSummary:
    active_days_w7d: int
    sessions_cnt_w7d: int
    max_level_w7d: int

def week_one_summary(active_days: Sequence[int], sessions: Sequence[int], max_level: int) -> WeekOneSummary:
    return WeekOneSummary(
        active_days_w7d=sum(1 for d in active_days if d <= 6),
        sessions_cnt_w7d=sum(1 for d in sessions if d <= 6),
        max_level_w7d=int(max_level),
    )

def desired_events_per_session(engagement: float) -> int:
    return max(18, int(floor(35 + 220 * engagement)))

SessionEvent = Tuple[str, str, Optional[Tuple[str, int]]]

def synthesize_session_events(
    rng: SeededRandom,
    profile: PlayerProfile,
    day_off: int,
    session_ms: int,
    milestones: Milestones,
    *,
    num_players: int,
    mess: MessRates,
) -> List[SessionEvent]:
    """
    Body of one session as (event_name, params, milestone) triples, in delivery order.

    milestone is a (name, ms) candidate carried by the first level_up >= 20,
    dungeon_clear or guild_join of the session while that milestone is still
    unset. It is only recorded once its event is actually written.
    """
    lat = profile.latents
    props = profile.propensities
    evts: List[SessionEvent] = []
    intensity = 0.15 + 0.55 * lat.engagement
    drawn = set()

    def n_of(propensity: float, hi: int, lo: int = 0) -> int:
        return int(floor(intensity * propensity * rng.int(lo, hi)))

    def candidate(name: str, lo_s: int, hi_s: int) -> Optional[Tuple[str, int]]:
        if name in drawn or getattr(milestones, f"{name}_ms") is not None:
            return None
        drawn.add(name)
        return (name, session_ms + rng.int(lo_s, hi_s) * 1000)

    if day_off <= 2 and rng.next() < 0.08:
        lvl = min(profile.max_level, rng.int(2, profile.max_level))
        evts.append(("level_up", f"level={lvl}", candidate("level20", 60, 1200) if lvl >= 20 else None))

    for _ in range(n_of(props.grind, 3)):
        evts.append(("quest_complete", f"quest=mq_{rng.int(1, 80)};xp={rng.int(100, 5000)}", None))

    for _ in range(n_of(props.grind, 2)):
        if rng.next() < 0.55:
            params = f"dungeon={rng.pick(DUNGEON_NAMES)}"
            evts.append(("dungeon_clear", params, candidate("first_dungeon", 60, 900)))
        else:
            evts.append(("pve_run", f"area={rng.pick(DUNGEON_NAMES)}", None))

    for _ in range(n_of(props.grind, 2)):
        evts.append(("soft_earn", f"amount={rng.int(500, 5000)};source={rng.pick(SOFT_SOURCES)}", None))

    for _ in range(n_of(props.grind, 2)):
        evts.append(("soft_spend", f"amount={rng.int(200, 4000)};target={rng.pick(SPEND_TARGETS)}", None))

    for _ in range(n_of(props.compete, 2)):
        evts.append(("pvp_match", f"result={'win' if rng.next() < 0.52 else 'lose'}", None))

    if rng.next() < profile.archetype.guild_p * (0.6 + 0.8 * props.social) and day_off <= 7:
        params = f"guild=g_{rng.int(1, 200)}"
        evts.append(("guild_join", params, candidate("first_guild", 60, 900)))
        for _ in range(n_of(props.social, 3, lo=1)):
            evts.append(("guild_activity", f"type={rng.pick(GUILD_ACTIVITIES)}", None))

    for _ in range(n_of(props.social, 3)):
        evts.append(("chat_message", f"channel={rng.pick(CHAT_CHANNELS)}", None))

    for _ in range(n_of(props.social, 2)):
        evts.append(("friend_add", f"friend={user_id_for(rng.int(0, num_players - 1))}", None))

    if profile.player.consent_marketing:
        for _ in range(n_of(props.pay, 2)):
            evts.append(("gacha_open", f"type={rng.pick(GACHA_TYPES)};pulls={rng.int(1, 10)}", None))
        for _ in range(n_of(props.pay, 3)):
            evts.append(("shop_view", f"section={rng.pick(SHOP_SECTIONS)}", None))

    # Top up with generic filler; very low engagement sessions stay short
    n_filler = max(0, desired_events_per_session(lat.engagement) - len(evts))
    for k in range(n_filler):
        if lat.engagement < 0.25 and k > 30:
            break
        evts.append((*rng.pick(FILLER_EVENTS)(rng), None))

    rng.shuffle(evts)
    if rng.next() < mess.ooo_rate and len(evts) > 6:
        for _ in range(3):
            idx = rng.int(1, len(evts) - 2)
            evts[idx], evts[idx - 1] = evts[idx - 1], evts[idx]

    return evts

@dataclass
class PlayerEventResult:
    milestones: Milestones = field(default_factory=Milestones)
    written: int = 0

def emit_player_events(
    rng: SeededRandom,
    profile: PlayerProfile,
    sessions: Sequence[int],
    budget: EventBudget,
    sink: EventSink,
    *,
    player_budget: int,
    num_players: int,
    mess: MessRates,
) -> PlayerEventResult:
    """Write all sessions of one player until the global cap or the player's share runs out."""
    res = PlayerEventResult()
    user_id = profile.player.game_user_id
    install_ms = profile.player.install_ms
    engagement = profile.latents.engagement

    def write(ms: int, name: str, sid: str, params: str) -> int:
        n = budget.write(sink, (user_id, iso_ts(ms), name, sid, params), rng, mess)
        res.written += n
        return n

    for s, day_off in enumerate(sessions):
        if budget.exhausted or res.written >= player_budget:
            break

        hour = rng.int(6, 23)
        session_ms = install_ms + day_off * MS_PER_DAY + hour * MS_PER_HOUR + rng.int(0, 3599) * 1000
        sid = f"s{profile.index}_{s}"
        len_min = round(6 + 80 * engagement)
        s_len = rng.int(max(4, len_min - 10), len_min + 15)

        write(session_ms, "session_start", sid, "")
        if budget.exhausted:
            break

        evts = synthesize_session_events(
            rng, profile, day_off, session_ms, res.milestones, num_players=num_players, mess=mess
        )
        span_ms = s_len * 60_000
        for e, (name, params, milestone) in enumerate(evts):
            if budget.exhausted or res.written >= player_budget:
                break
            off_ms = round((e + 1) / (len(evts) + 2) * span_ms)
            if write(session_ms + off_ms, name, sid, params) and milestone is not None:
                res.milestones.mark(*milestone)

        if budget.exhausted:
            break
        if res.written < player_budget:
            write(session_ms + span_ms, "session_end", sid, f"duration_seconds={s_len * 60}")

    return res
