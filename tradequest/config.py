# tradequest/config.py
import os
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple

@dataclass(frozen=True)
class AssetSpec:
    symbol: str
    name: str
    sector: str
    volatility: float   # annualized
    base_price: float
    kind: str = "stock"

DEFAULT_UNIVERSE: List[AssetSpec] = [
    AssetSpec("AAPL", "Apple", "tech", 0.28, 190.0),
    AssetSpec("TSLA", "Tesla", "auto", 0.55, 240.0),
    AssetSpec("NVDA", "Nvidia", "tech", 0.50, 120.0),
    AssetSpec("MSFT", "Microsoft", "tech", 0.25, 430.0),
    AssetSpec("BTC", "Bitcoin", "crypto", 0.75, 65000.0, kind="crypto"),
    AssetSpec("ETH", "Ethereum", "crypto", 0.90, 3400.0, kind="crypto"),
]

@dataclass
class PriceModel:
    base_drift: float = 0.00001
    sentiment_drift: float = 0.0004
    event_damping: float = 0.05
    reversion: float = 0.002
    max_move: float = 0.08        # clamp on a single tick's log move
    spread: float = 0.001         # full bid/ask spread as a fraction of price
    sentiment_step: float = 0.05
    min_price: float = 0.01
    base_volume: int = 1_000

@dataclass
class EventModel:
    spawn_prob: float = 0.18
    positive_prob: float = 0.55
    sector_prob: float = 0.30
    impact_range: Tuple[float, float] = (0.02, 0.10)
    duration_range: Tuple[int, int] = (6, 18)   # ticks, inclusive
    max_visible: int = 6
    positive_headlines: Tuple[str, ...] = (
        "{name} positive catalyst: guidance surprise",
        "{name} rallies on upbeat earnings",
        "Analysts upgrade {name}",
        "{name} lands a major partnership",
    )
    negative_headlines: Tuple[str, ...] = (
        "{name} negative headline: regulatory concern",
        "{name} slides after earnings miss",
        "Analysts downgrade {name}",
        "{name} hit by supply-chain worries",
    )

@dataclass
class BookModel:
    levels: int = 8
    spread: float = 0.0005
    size_range: Tuple[int, int] = (10, 500)

@dataclass
class SimulationConfig:
    tick_ms: int = 1200
    history_points: int = 240        # equity history capacity
    price_history_points: int = 312
    ticks_per_day: int = 78
    starting_cash: float = 10_000.0
    max_trades: int = 200
    event_every_ticks: int = 3
    book_refresh_ms: int = 2000
    seed: Optional[int] = None
    universe: List[AssetSpec] = field(default_factory=lambda: list(DEFAULT_UNIVERSE))
    price: PriceModel = field(default_factory=PriceModel)
    events: EventModel = field(default_factory=EventModel)
    book: BookModel = field(default_factory=BookModel)

    @classmethod
    def from_env(cls, **overrides) -> "SimulationConfig":
        seed = os.getenv("TRADEQUEST_SEED")
        cfg = cls(
            tick_ms=int(os.getenv("TRADEQUEST_TICK_MS", "1200")),
            history_points=int(os.getenv("TRADEQUEST_HISTORY_POINTS", "240")),
            seed=int(seed) if seed else None,
        )
        return replace(cfg, **overrides)

    def settings(self) -> Dict[str, int]:
        return {"tick_ms": self.tick_ms, "history_points": self.history_points}

    def with_settings(self, settings: Optional[dict]) -> "SimulationConfig":
        if not settings: return self
        return replace(self,
                       tick_ms=int(settings.get("tick_ms", self.tick_ms)),
                       history_points=int(settings.get("history_points", self.history_points)))

    def validate(self) -> "SimulationConfig":
        if self.tick_ms <= 0 or self.book_refresh_ms <= 0 or self.event_every_ticks <= 0:
            raise ValueError("tick_ms, book_refresh_ms and event_every_ticks must be positive")
        if self.history_points < 2:
            raise ValueError(f"history_points must be at least 2, got {self.history_points}")
        if self.ticks_per_day <= 0 or self.price_history_points <= self.ticks_per_day:
            raise ValueError("price_history_points must exceed ticks_per_day")
        if self.starting_cash < 0 or self.max_trades <= 0:
            raise ValueError("starting_cash must be >= 0 and max_trades > 0")
        if not self.universe:
            raise ValueError("asset universe is empty")
        symbols = [a.symbol for a in self.universe]
        if len(set(symbols)) != len(symbols):
            raise ValueError(f"duplicate symbols in universe: {symbols}")
        for a in self.universe:
            if a.volatility <= 0 or a.base_price <= 0:
                raise ValueError(f"{a.symbol}: volatility and base_price must be positive")
        lo, hi = self.events.duration_range
        if lo < 1 or hi < lo:
            raise ValueError(f"bad event duration range {self.events.duration_range}")
        return self
