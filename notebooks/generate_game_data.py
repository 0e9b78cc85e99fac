# notebooks/generate_game_data.py

"""
Functions as 'control panel' in relation to other modules.
"""

# Import libraries and modules
from pathlib import Path
import sys

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))
from datetime import date
today_str = date.today().strftime("%m-%d-%y")

import pandas as pd

from pltv_synth.config import GenerationConfig, GBTConfig
from pltv_synth.contracts import DEFAULT_MODEL_FEATURES, EVENTS_COLS, PAYMENTS_COLS, PLAYERS_COLS
from pltv_synth.dgp import generate_game_world
from pltv_synth.split import split_summary_df
from pltv_synth.scoring import train_pltv_model, pltv_scores_df, build_audiences
from pltv_synth.eval import decile_lift_df, channel_roas_df
from pltv_synth.diagnostics import run_cleaning_pipeline, cleaning_report_df
from pltv_synth.graphics import export_model_plots
from pltv_synth.exports import save_workbook, write_tables_atomic
from pltv_synth.checks import (
    assert_has_cols,
    assert_unique_col,
    assert_nonneg,
    assert_one_to_one,
    assert_keys_subset,
    assert_ltv_monotone,
    assert_consent_gating,
    assert_event_cap,
    assert_refunds_excluded,
    assert_within_window,
    assert_scores_contract,
    warn_negative_profit,
)

# Parameters
## Directory
out_dir = PROJECT_ROOT / "outputs"
out_dir_g = out_dir / "graphics"

## Runs
gen_cfg = GenerationConfig()
warm_cfg = GBTConfig(target="ltv_d60", use_log_target=True, test_split=0.25, model_track="warm")
cold_cfg = GBTConfig(target="ltv_d60", use_log_target=True, test_split=0.25, model_track="cold")

## Select output
Export = {
    "tables": True,
    "summary": False,
    "cold_start": False,
    "plots": False,
}

# Define the main function to execute the notebook steps
def main():
    # Generate synthetic data
    print(f"Generating {gen_cfg.num_players} players with ~{gen_cfg.target_events:,} events...")
    world = generate_game_world(gen_cfg)

    ## Check synthetic data
    assert_has_cols(world.players, PLAYERS_COLS, "players")
    assert_has_cols(world.events, EVENTS_COLS, "events")
    assert_has_cols(world.payments, PAYMENTS_COLS, "payments")
    assert_unique_col(world.players, "game_user_id", "players")
    assert_one_to_one(world.players, world.labels, names=("players", "labels"))
    assert_keys_subset(world.events, world.players, name="events")
    assert_keys_subset(world.payments, world.players, name="payments")
    assert_nonneg(world.payments, "amount_usd", "payments")
    assert_nonneg(world.ua_costs, "spend", "ua_costs")
    assert_event_cap(world.events, gen_cfg.target_events)
    assert_consent_gating(world.players)
    assert_ltv_monotone(world.labels)
    assert_refunds_excluded(world.payments_clean, world.labels)
    assert_within_window(world.payments_clean, world.players, time_col="txn_time", name="payments")
    assert_within_window(world.events_clean, world.players, time_col="event_time", name="events")
    warn_negative_profit(world.labels)

    b = world.budget
    print(f"Event budget: cap {b.cap:,}, written {b.written:,}, dropped {b.dropped:,}, duplicated {b.duplicated:,}")
    print("Injected data-quality issues:")
    for k, v in world.corruption_report.items():
        print(f"  {k}: {v:,}")

    # Clean the dirty telemetry back up
    _, _, cleaning = run_cleaning_pipeline(world.players, world.events, world.payments)
    cleaning_df = cleaning_report_df(cleaning)
    print(
        f"Cleaning: {cleaning['raw_event_count']:,} raw -> {cleaning['clean_event_count']:,} clean events; "
        f"net revenue ${cleaning['net_revenue_usd']:,.2f}"
    )

    # Train + score (canonical warm-start run)
    print(f"Training {warm_cfg.n_trees} trees on {len(DEFAULT_MODEL_FEATURES)} features (target {warm_cfg.target})...")
    result = train_pltv_model(world.features, DEFAULT_MODEL_FEATURES, warm_cfg)
    scores_df = pltv_scores_df(result)
    assert_scores_contract(scores_df, n_players=len(world.players))
    print(f"{result.model_id}: train {result.train_size}, test {result.test_size}")
    print(f"  MAE {result.mae:.2f}  RMSE {result.rmse:.2f}  R2 {result.r2:.3f}")
    print("Top features:")
    print(result.importance.head(5).to_string(index=False))

    lift_df = decile_lift_df(result.scored, world.labels, target=warm_cfg.target)
    roas_df = channel_roas_df(result.scored, world.features, target=warm_cfg.target)
    audiences_df = build_audiences(result.scored, world.features, target=warm_cfg.target)

    ## Cold-start comparison
    if Export["cold_start"]:
        cold = train_pltv_model(world.features, DEFAULT_MODEL_FEATURES, cold_cfg)
        print(f"{cold.model_id}: MAE {cold.mae:.2f}  RMSE {cold.rmse:.2f}  R2 {cold.r2:.3f}")
        print(f"  features used: {sorted(cold.model.features_used())}")

    # Graphics
    if Export["plots"]:
        plotted = export_model_plots(lift_df, result.importance, out_dir=out_dir_g, title_suffix=result.model_id)
        print(f"Wrote model graphics to {out_dir_g}:")
        for k, p in plotted.items():
            print(f"  {k}: {p.name}")

    # Save outputs
    ## Output tables
    if Export["tables"]:
        written = write_tables_atomic(
            {
                "players": world.players,
                "events": world.events,
                "payments": world.payments,
                "ua_costs": world.ua_costs,
                "labels": world.labels,
                "pltv_scores": scores_df,
            },
            out_dir,
        )
        counts = {**world.row_counts(), "pltv_scores": len(scores_df)}
        for name, path in written.items():
            print(f"Wrote {counts[name]:,} rows to {path}")

    ## Run summary
    if Export["summary"]:
        out_path = out_dir / f"pltv_summary ({today_str}).xlsx"
        actual_path = save_workbook(
            sheets={
                "split_summary": split_summary_df(result.split),
                "importance": result.importance,
                "decile_lift": lift_df,
                "channel_roas": roas_df,
                "audiences": audiences_df,
                "cleaning": cleaning_df,
                "volume_anomalies": cleaning["volume_anomalies"],
                "corruption": pd.DataFrame([world.corruption_report]),
            },
            out_path=out_path,
            index=False,
        )
        print(f"Wrote summary workbook to: {actual_path}")

if __name__ == "__main__":
    main()
