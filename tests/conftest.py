"""
Pytest configuration and fixtures

Shared fixtures for all tests:
- A small generated game world (generated once per session)
- The canonical warm-start and the cold-start models trained on it
- A scripted random stream for branch-level unit tests
"""

import matplotlib

matplotlib.use("Agg")

import pytest

from pltv_synth.config import GBTConfig, GenerationConfig
from pltv_synth.contracts import DEFAULT_MODEL_FEATURES
from pltv_synth.dgp import generate_game_world
from pltv_synth.scoring import train_pltv_model


class ScriptedRandom:
    """Stand-in for SeededRandom that replays fixed draws (last value repeats)"""

    def __init__(self, *values):
        self.values = list(values)
        self.calls = 0

    def next(self):
        v = self.values[min(self.calls, len(self.values) - 1)]
        self.calls += 1
        return v


@pytest.fixture
def scripted():
    return ScriptedRandom


@pytest.fixture(scope="session")
def small_cfg():
    """300 players / 20,000 events: big enough to hit the cap, quick to build"""
    return GenerationConfig(num_players=300, target_events=20_000)


@pytest.fixture(scope="session")
def world(small_cfg):
    return generate_game_world(small_cfg)


@pytest.fixture(scope="session")
def warm_result(world):
    return train_pltv_model(world.features, DEFAULT_MODEL_FEATURES, GBTConfig(model_track="warm"))


@pytest.fixture(scope="session")
def cold_result(world):
    return train_pltv_model(world.features, DEFAULT_MODEL_FEATURES, GBTConfig(model_track="cold"))
