"""
test_market.py
--------------
Price process and market state: positivity, quotes, derived daily fields,
bounded history and seeded replay.
"""

import numpy as np
import pytest

from tradequest.config import AssetSpec, PriceModel
from tradequest.market import Asset, MarketState, advance_price, step_sentiment


@pytest.fixture
def asset():
    return Asset.from_spec(AssetSpec("X", "Xylo", "tech", 0.3, 100.0), capacity=50, spread=0.001, now=0.0)


class TestAdvancePrice:

    def test_prices_stay_positive_with_quotes_around_them(self, rng):
        model = PriceModel(spread=0.004)
        a = Asset.from_spec(AssetSpec("W", "Wild", "x", 5.0, 1.0), capacity=30, spread=model.spread, now=0.0)
        for t in range(2_000):
            advance_price(a, -1.0, -0.5, rng, model, now=float(t), ticks_per_day=10, dt=0.01)
            assert a.price > 0
            assert a.bid <= a.price <= a.ask

    def test_price_floor(self, rng):
        model = PriceModel(max_move=10.0, min_price=0.01)
        a = Asset.from_spec(AssetSpec("P", "Penny", "x", 0.3, 0.011), capacity=10, spread=0.0, now=0.0)
        assert advance_price(a, 0.0, -100.0, rng, model, now=1.0, ticks_per_day=5) == 0.01

    def test_move_is_clamped(self, rng, asset):
        model = PriceModel(max_move=0.08)
        new = advance_price(asset, 0.0, 1_000.0, rng, model, now=1.0, ticks_per_day=5)
        assert new == pytest.approx(100.0 * np.exp(0.08))

    def test_positive_event_lifts_price(self, asset):
        model = PriceModel()
        twin = Asset.from_spec(AssetSpec("X", "Xylo", "tech", 0.3, 100.0), capacity=50, spread=0.001, now=0.0)
        up = advance_price(asset, 0.0, 0.08, np.random.default_rng(1), model, now=1.0, ticks_per_day=5)
        flat = advance_price(twin, 0.0, 0.0, np.random.default_rng(1), model, now=1.0, ticks_per_day=5)
        assert up > flat
        assert np.log(up / flat) == pytest.approx(0.08 * model.event_damping)

    def test_history_is_bounded(self, rng, asset):
        for t in range(120):
            advance_price(asset, 0.0, 0.0, rng, PriceModel(), now=float(t), ticks_per_day=5)
        assert len(asset.history) == 50
        assert asset.history[-1].price == asset.price
        assert all(p.volume > 0 for p in asset.history)

    def test_change_is_zero_until_a_day_of_history(self, rng, asset):
        for t in range(3):
            advance_price(asset, 0.0, 0.0, rng, PriceModel(), now=float(t), ticks_per_day=5)
            assert asset.change == 0.0 and asset.change_pct == 0.0

    def test_change_against_one_day_back(self, rng, asset):
        for t in range(8):
            advance_price(asset, 0.0, 0.0, rng, PriceModel(), now=float(t), ticks_per_day=5)
        ref = asset.history[-6].price
        assert asset.change == pytest.approx(asset.price - ref)
        assert asset.change_pct == pytest.approx((asset.price - ref) / ref)

    def test_daily_high_low_window(self, rng, asset):
        for t in range(12):
            advance_price(asset, 0.0, 0.0, rng, PriceModel(), now=float(t), ticks_per_day=5)
        last_day = [p.price for p in list(asset.history)[-5:]]
        assert asset.day_high == max(last_day)
        assert asset.day_low == min(last_day)

    def test_seeded_replay(self):
        paths = []
        for _ in range(2):
            a = Asset.from_spec(AssetSpec("X", "Xylo", "tech", 0.3, 100.0), capacity=50, spread=0.0, now=0.0)
            g = np.random.default_rng(123)
            paths.append([advance_price(a, 0.2, 0.0, g, PriceModel(), now=float(t), ticks_per_day=5)
                          for t in range(40)])
        assert paths[0] == paths[1]


class TestSentiment:

    def test_bounded_walk(self, rng):
        s = 0.0
        for _ in range(5_000):
            s = step_sentiment(s, rng, 0.5)
            assert -1.0 <= s <= 1.0


class TestMarketState:

    def test_sector_lookup_and_frame(self):
        specs = [AssetSpec("A", "a", "tech", 0.2, 10.0), AssetSpec("B", "b", "tech", 0.2, 20.0),
                 AssetSpec("C", "c", "crypto", 0.9, 30.0)]
        m = MarketState.from_universe(specs, capacity=20, spread=0.0, now=0.0)
        assert m.symbols_in_sector("tech") == ["A", "B"]
        assert m.sectors() == ["crypto", "tech"]
        assert m.prices() == {"A": 10.0, "B": 20.0, "C": 30.0}
        frame = m.to_frame()
        assert list(frame.index) == ["A", "B", "C"]
        assert (frame["bid"] <= frame["price"]).all() and (frame["price"] <= frame["ask"]).all()
        assert m.get("missing") is None
