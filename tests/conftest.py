"""
conftest.py
-----------
Shared fixtures: a small four-asset universe with a zero spread, a stepping
clock and seeded numpy generators so every run replays identically.
"""

import numpy as np
import pytest

from tradequest.config import AssetSpec, PriceModel, SimulationConfig
from tradequest.session import GameSession


UNIVERSE = [
    AssetSpec("X", "Xylo",  "tech",   0.30, 100.0),
    AssetSpec("Y", "Yoke",  "tech",   0.30,  50.0),
    AssetSpec("Z", "Zinc",  "mining", 0.30,  20.0),
    AssetSpec("C", "Coin",  "crypto", 0.80, 1000.0, kind="crypto"),
]


class StepClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: float = 1_700_000_000.0, step: float = 1.0):
        self.t = start
        self.step = step

    def __call__(self) -> float:
        self.t += self.step
        return self.t


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def cfg():
    return SimulationConfig(universe=list(UNIVERSE), price=PriceModel(spread=0.0), seed=7)


@pytest.fixture
def session(cfg, clock):
    return GameSession(cfg, rng=np.random.default_rng(7), clock=clock)


@pytest.fixture
def set_price():
    """Pin an asset's quoted price without running the price process."""
    def _set(game: GameSession, symbol: str, price: float) -> None:
        asset = game.market.assets[symbol]
        asset.price = price
        asset.refresh_derived(game.config.ticks_per_day, game.config.price.spread)
    return _set
