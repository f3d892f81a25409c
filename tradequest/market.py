# tradequest/market.py
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional
import numpy as np, pandas as pd
from .config import AssetSpec, PriceModel
from .utils import PERIODS_PER_YEAR, clamp, safe_div

@dataclass(frozen=True)
class PricePoint:
    price: float
    volume: int
    timestamp: float

@dataclass
class Asset:
    symbol: str
    name: str
    sector: str
    volatility: float
    price: float
    base_price: float
    kind: str = "stock"
    history: Deque[PricePoint] = field(default_factory=deque)
    day_high: float = 0.0
    day_low: float = 0.0
    bid: float = 0.0
    ask: float = 0.0
    change: float = 0.0
    change_pct: float = 0.0

    @classmethod
    def from_spec(cls, spec: AssetSpec, capacity: int, spread: float, now: float) -> "Asset":
        a = cls(symbol=spec.symbol, name=spec.name, sector=spec.sector, volatility=spec.volatility,
                price=spec.base_price, base_price=spec.base_price, kind=spec.kind,
                history=deque(maxlen=capacity))
        a.history.append(PricePoint(spec.base_price, 0, now))
        a.refresh_derived(ticks_per_day=1, spread=spread)
        return a

    def refresh_derived(self, ticks_per_day: int, spread: float) -> None:
        window = [p.price for p in list(self.history)[-ticks_per_day:]] or [self.price]
        self.day_high, self.day_low = max(window), min(window)
        # reference is the sample one trading day before the latest one
        if len(self.history) > ticks_per_day:
            ref = self.history[-1 - ticks_per_day].price
            self.change = self.price - ref
            self.change_pct = safe_div(self.change, ref)
        else:
            self.change, self.change_pct = 0.0, 0.0
        half = spread / 2.0
        self.bid = min(self.price, self.price * (1.0 - half))
        self.ask = max(self.price, self.price * (1.0 + half))

def step_sentiment(sentiment: float, rng: np.random.Generator, step: float) -> float:
    return clamp(sentiment + float(rng.normal(0.0, step)), -1.0, 1.0)

def advance_price(asset: Asset, sentiment: float, event_impact: float, rng: np.random.Generator,
                  model: PriceModel, now: float, ticks_per_day: int,
                  dt: float = 1.0 / PERIODS_PER_YEAR) -> float:
    """
    One log-space price step: drift (base + sentiment), bounded zero-mean diffusion,
    damped event impact and a weak pull back toward the base price.
    Mutates ``asset`` in place and returns the new price.
    """
    drift = model.base_drift + model.sentiment_drift * sentiment
    diffusion = asset.volatility * np.sqrt(dt) * float(rng.uniform(-1.0, 1.0))
    revert = -model.reversion * safe_div(asset.price - asset.base_price, asset.base_price)
    move = clamp(drift + diffusion + event_impact * model.event_damping + revert,
                 -model.max_move, model.max_move)
    new_price = max(model.min_price, float(asset.price * np.exp(move)))
    volume = int(model.base_volume * (1.0 + 50.0 * abs(move)) * float(rng.uniform(0.5, 1.5)))
    asset.price = new_price
    asset.history.append(PricePoint(new_price, volume, now))
    asset.refresh_derived(ticks_per_day, model.spread)
    return new_price

@dataclass
class MarketState:
    assets: Dict[str, Asset]
    sentiment: float = 0.0
    events: List["MarketEvent"] = field(default_factory=list)   # newest first
    tick: int = 0
    updated_at: float = 0.0

    @classmethod
    def from_universe(cls, universe: List[AssetSpec], capacity: int, spread: float, now: float) -> "MarketState":
        return cls(assets={s.symbol: Asset.from_spec(s, capacity, spread, now) for s in universe}, updated_at=now)

    def get(self, symbol: str) -> Optional[Asset]: return self.assets.get(symbol)
    def prices(self) -> Dict[str, float]: return {s: a.price for s, a in self.assets.items()}
    def sectors(self) -> List[str]: return sorted({a.sector for a in self.assets.values()})
    def symbols_in_sector(self, sector: str) -> List[str]:
        return [s for s, a in self.assets.items() if a.sector == sector]
    def visible_events(self, limit: int) -> list: return self.events[:limit]

    def to_frame(self) -> pd.DataFrame:
        rows = [{"symbol": a.symbol, "name": a.name, "sector": a.sector, "price": a.price,
                 "bid": a.bid, "ask": a.ask, "high": a.day_high, "low": a.day_low,
                 "change": a.change, "change_pct": a.change_pct} for a in self.assets.values()]
        return pd.DataFrame(rows).set_index("symbol") if rows else pd.DataFrame()
