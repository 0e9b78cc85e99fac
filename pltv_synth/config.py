# pltv_synth/config.py

"""
Run configuration. Plain frozen dataclasses with defaults; pass them explicitly
(cfg=...) rather than reading anything from the environment.
"""

# Import libraries and modules
from __future__ import annotations
from dataclasses import dataclass, field
from math import ceil

# Transport-level defects applied while events are written
@dataclass(frozen=True)
class MessRates:
    dup_rate: float = 0.008    # client re-delivers the same row
    drop_rate: float = 0.004   # row lost in transport
    ooo_rate: float = 0.015    # session batch arrives slightly out of order

    def __post_init__(self) -> None:
        for name in ("dup_rate", "drop_rate", "ooo_rate"):
            _check_rate(name, getattr(self, name))

# Post-hoc dirty data injected into the finished tables
@dataclass(frozen=True)
class CorruptionRates:
    dup_events: float = 0.03
    late_events: float = 0.015
    bad_timestamps: float = 0.005
    missing_user_ids: float = 0.003
    dup_payments: float = 0.02

    def __post_init__(self) -> None:
        for name in ("dup_events", "late_events", "bad_timestamps", "missing_user_ids", "dup_payments"):
            _check_rate(name, getattr(self, name))

    @property
    def event_rates(self) -> tuple[float, ...]:
        return (self.dup_events, self.late_events, self.bad_timestamps, self.missing_user_ids)

@dataclass(frozen=True)
class GenerationConfig:
    num_players: int = 2000
    target_events: int = 100_000
    seed: int = 42
    base_date: str = "2024-10-01"
    install_window_days: int = 122
    activity_days: int = 31                 # D0..D30
    late_monetizer_rate: float = 0.08
    false_early_payer_rate: float = 0.05
    per_player_budget_floor: int = 250
    mess: MessRates = field(default_factory=MessRates)
    corruption: CorruptionRates = field(default_factory=CorruptionRates)

    def __post_init__(self) -> None:
        if self.num_players < 1:
            raise ValueError(f"num_players must be >= 1, got {self.num_players}")
        if self.target_events < 0:
            raise ValueError(f"target_events must be >= 0, got {self.target_events}")
        if self.install_window_days < 1:
            raise ValueError(f"install_window_days must be >= 1, got {self.install_window_days}")
        if self.activity_days < 1:
            raise ValueError(f"activity_days must be >= 1, got {self.activity_days}")
        if self.per_player_budget_floor < 0:
            raise ValueError("per_player_budget_floor must be >= 0")
        _check_rate("late_monetizer_rate", self.late_monetizer_rate)
        _check_rate("false_early_payer_rate", self.false_early_payer_rate)

    @property
    def corruption_headroom(self) -> int:
        """Rows reserved under target_events for injected dirty events."""
        return int(sum(ceil(self.target_events * r) for r in self.corruption.event_rates))

    @property
    def event_cap(self) -> int:
        """Cap enforced by the EventBudget while clean events are emitted."""
        return max(0, self.target_events - self.corruption_headroom)

MODEL_TRACKS = ("warm", "cold")

@dataclass(frozen=True)
class GBTConfig:
    target: str = "ltv_d60"
    use_log_target: bool = True
    test_split: float = 0.25
    model_track: str = "warm"       # "cold" hides monetization features
    n_trees: int = 120
    learning_rate: float = 0.08
    max_depth: int = 4
    min_samples_leaf: int = 5
    max_bins: int = 32
    bag_fraction: float = 0.8
    seed: int = 777

    def __post_init__(self) -> None:
        if self.model_track not in MODEL_TRACKS:
            raise ValueError(f"model_track must be one of {MODEL_TRACKS}, got {self.model_track!r}")
        if not 0.0 <= self.test_split < 1.0:
            raise ValueError(f"test_split must be in [0, 1), got {self.test_split}")
        if self.n_trees < 0 or self.max_depth < 0:
            raise ValueError("n_trees and max_depth must be >= 0")
        if self.min_samples_leaf < 1:
            raise ValueError("min_samples_leaf must be >= 1")
        if self.max_bins < 2:
            raise ValueError("max_bins must be >= 2")
        if not 0.0 < self.bag_fraction <= 1.0:
            raise ValueError(f"bag_fraction must be in (0, 1], got {self.bag_fraction}")

def _check_rate(name: str, value: float) -> None:
    if not 0.0 <= float(value) < 1.0:
        raise ValueError(f"{name} must be in [0, 1), got {value}")
