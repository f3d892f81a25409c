# tradequest/events.py
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional
import numpy as np
from .config import EventModel
from .market import Asset, MarketState
from .utils import get_logger

log = get_logger(__name__)

class ScopeKind(str, Enum):
    SYMBOL = "symbol"
    SECTOR = "sector"

@dataclass(frozen=True)
class EventScope:
    kind: ScopeKind
    target: str
    def includes(self, asset: Asset) -> bool:
        if self.kind is ScopeKind.SYMBOL: return asset.symbol == self.target
        return asset.sector == self.target

@dataclass(frozen=True)
class MarketEvent:
    """A news shock; contributes to ticks ``created_tick+1 .. expires_tick`` inclusive."""
    id: str
    impact: float
    scope: EventScope
    headline: str
    created_tick: int
    expires_tick: int
    created_at: float

    @property
    def duration(self) -> int: return self.expires_tick - self.created_tick
    def is_active(self, tick: int) -> bool: return self.created_tick < tick <= self.expires_tick
    def affected_symbols(self, market: MarketState) -> List[str]:
        if self.scope.kind is ScopeKind.SECTOR: return market.symbols_in_sector(self.scope.target)
        return [self.scope.target] if self.scope.target in market.assets else []

    def to_dict(self) -> dict:
        return {"id": self.id, "impact": self.impact, "scope": self.scope.kind.value,
                "target": self.scope.target, "headline": self.headline,
                "created_tick": self.created_tick, "expires_tick": self.expires_tick,
                "created_at": self.created_at}

def event_impact(asset: Asset, events: List[MarketEvent], tick: int) -> float:
    return float(sum(e.impact for e in events if e.is_active(tick) and e.scope.includes(asset)))

def impacts_by_symbol(market: MarketState, tick: int) -> Dict[str, float]:
    return {s: event_impact(a, market.events, tick) for s, a in market.assets.items()}

def maybe_spawn_event(now: float, market: MarketState, rng: np.random.Generator,
                      model: EventModel) -> Optional[MarketEvent]:
    """Roll for a new event; on success it is prepended to ``market.events`` and returned."""
    if not market.assets or rng.random() >= model.spawn_prob: return None
    positive = rng.random() < model.positive_prob
    if rng.random() < model.sector_prob:
        sector = str(rng.choice(market.sectors()))
        scope, name = EventScope(ScopeKind.SECTOR, sector), f"{sector.capitalize()} sector"
    else:
        asset = market.assets[str(rng.choice(sorted(market.assets)))]
        scope, name = EventScope(ScopeKind.SYMBOL, asset.symbol), asset.name
    lo, hi = model.impact_range
    impact = float(rng.uniform(lo, hi)) * (1.0 if positive else -1.0)
    duration = int(rng.integers(model.duration_range[0], model.duration_range[1] + 1))
    pool = model.positive_headlines if positive else model.negative_headlines
    headline = pool[int(rng.integers(len(pool)))].format(name=name)
    evt = MarketEvent(id=uuid.UUID(bytes=rng.bytes(16), version=4).hex, impact=impact,
                      scope=scope, headline=headline, created_tick=market.tick,
                      expires_tick=market.tick + duration, created_at=now)
    market.events.insert(0, evt)
    log.info("event %s: %s (impact %+.3f, %d ticks)", evt.id[:8], headline, impact, duration)
    return evt

def prune_expired(market: MarketState, tick: int) -> List[MarketEvent]:
    """The only removal path: drops events whose last contributing tick has passed."""
    expired = [e for e in market.events if e.expires_tick <= tick]
    if expired:
        market.events = [e for e in market.events if e.expires_tick > tick]
        for e in expired: log.info("event %s expired at tick %d", e.id[:8], tick)
    return expired
