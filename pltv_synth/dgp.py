# pltv_synth/dgp.py

"""
Data generation process - one seeded pass that builds the whole synthetic world.

Per player: acquisition record -> archetype / retention / latents ->
activity days -> sessions -> events (under the shared EventBudget) ->
payments. Reaching the event cap only stops event emission; the player loop
always runs to num_players. Afterwards the corruptor dirties the event and
payment tables, UA costs are generated, and labels/features are joined.
"""

# Import libraries and modules
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List

import pandas as pd

from .config import GenerationConfig
from .contracts import PAYMENTS_COLS, PLAYERS_COLS
from .corruption import corrupt_tables
from .events import (
    EventBudget,
    EventSink,
    Milestones,
    WeekOneSummary,
    emit_player_events,
    player_event_budget,
    schedule_sessions,
    week_one_summary,
)
from .labels import assemble_labels, build_feature_rows
from .monetization import PaymentAggregate, simulate_payments, transaction_row
from .players import Player, draw_player, draw_profile
from .retention import simulate_activity
from .rng import SeededRandom
from .ua_costs import build_cpi_lookup, generate_ua_costs
from .utils import date_to_ms

@dataclass
class GameWorld:
    players: pd.DataFrame
    events: pd.DataFrame
    payments: pd.DataFrame
    ua_costs: pd.DataFrame
    labels: pd.DataFrame
    features: pd.DataFrame
    events_clean: pd.DataFrame
    payments_clean: pd.DataFrame
    budget: EventBudget
    corruption_report: Dict[str, int] = field(default_factory=dict)

    def row_counts(self) -> Dict[str, int]:
        return {
            "players": len(self.players),
            "events": len(self.events),
            "payments": len(self.payments),
            "ua_costs": len(self.ua_costs),
            "labels": len(self.labels),
        }

# Function to generate the synthetic game world
def generate_game_world(cfg: GenerationConfig = GenerationConfig()) -> GameWorld:
    rng = SeededRandom(cfg.seed)
    base_ms = date_to_ms(cfg.base_date)

    budget = EventBudget(cap=cfg.event_cap)
    sink = EventSink()

    players: List[Player] = []
    payment_rows: List[dict] = []
    aggregates: Dict[str, PaymentAggregate] = {}
    week_one: Dict[str, WeekOneSummary] = {}

    for i in range(cfg.num_players):
        player = draw_player(rng, i, base_ms=base_ms, install_window_days=cfg.install_window_days)
        players.append(player)
        profile = draw_profile(rng, i, player)

        active_days = simulate_activity(rng, profile.retention, player.install_ms, cfg.activity_days)
        sessions = schedule_sessions(rng, active_days, profile.latents.engagement)
        week_one[player.game_user_id] = week_one_summary(active_days, sessions, profile.max_level)

        ## Events (skipped once the cap is hit, the player still gets payments and labels)
        milestones = Milestones()
        if not budget.exhausted:
            share = player_event_budget(budget, cfg.num_players - i, cfg.per_player_budget_floor)
            res = emit_player_events(
                rng,
                profile,
                sessions,
                budget,
                sink,
                player_budget=share,
                num_players=cfg.num_players,
                mess=cfg.mess,
            )
            milestones = res.milestones

        ## Payments
        txns, agg = simulate_payments(
            rng,
            player,
            profile.latents,
            milestones,
            late_rate=cfg.late_monetizer_rate,
            false_early_rate=cfg.false_early_payer_rate,
        )
        aggregates[player.game_user_id] = agg
        payment_rows.extend(transaction_row(player.game_user_id, t) for t in txns)

    players_df = pd.DataFrame([p.to_row() for p in players], columns=list(PLAYERS_COLS))
    events_clean = sink.to_frame()
    payments_clean = pd.DataFrame(payment_rows, columns=list(PAYMENTS_COLS))

    events, payments, report = corrupt_tables(rng, events_clean, payments_clean, cfg.corruption)

    ua_costs = generate_ua_costs(rng, base_ms=base_ms, n_days=cfg.install_window_days)
    cpi_lookup = build_cpi_lookup(ua_costs)

    labels = assemble_labels(players, aggregates, week_one, cpi_lookup)
    features = build_feature_rows(labels, players_df)

    return GameWorld(
        players=players_df,
        events=events,
        payments=payments,
        ua_costs=ua_costs,
        labels=labels,
        features=features,
        events_clean=events_clean,
        payments_clean=payments_clean,
        budget=budget,
        corruption_report=report,
    )

# Run independently for validation.
if __name__ == "__main__":
    world = generate_game_world(GenerationConfig(num_players=200, target_events=10_000))
    print("Row counts:")
    print(world.row_counts())
    print("\nPlayers head:")
    print(world.players.head())
    print("\nLabels head:")
    print(world.labels.head())
    print("\nCorruption report:")
    print(world.corruption_report)
