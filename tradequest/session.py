# tradequest/session.py
import time
from typing import Callable, Dict, List, Optional, Sequence, Tuple
import numpy as np, pandas as pd
from .config import SimulationConfig
from .events import MarketEvent, event_impact, maybe_spawn_event, prune_expired
from .market import MarketState, advance_price, step_sentiment
from .missions import DEFAULT_MISSIONS, Mission, MissionContext, Progression, evaluate
from .orderbook import OrderBook, build_depth
from .papertrade import BrokerState, OrderError, PaperBroker, PerformanceMetrics, Trade
from .utils import TRADING_DAYS, get_logger

log = get_logger(__name__)

class GameSession:
    """
    Owns one game's MarketState, broker ledger and Progression. Every mutation goes
    through tick(), check_events(), refresh_books() or execute(); callers on a single
    thread or event loop never observe a half-applied step.
    """
    def __init__(self, config: Optional[SimulationConfig] = None, snapshot: Optional[dict] = None,
                 missions: Sequence[Mission] = DEFAULT_MISSIONS, rng: Optional[np.random.Generator] = None,
                 clock: Callable[[], float] = time.time):
        self.config = (config or SimulationConfig()).with_settings((snapshot or {}).get("settings")).validate()
        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)
        self.clock = clock
        self.missions = list(missions)
        self.periods = TRADING_DAYS * self.config.ticks_per_day
        self.market = MarketState.from_universe(self.config.universe, self.config.price_history_points,
                                                self.config.price.spread, clock())
        self.broker = self._new_broker(snapshot)
        self.progression = Progression.from_dict(snapshot)
        self.books: Dict[str, OrderBook] = {}
        self.refresh_books()

    def _new_broker(self, snapshot: Optional[dict]) -> PaperBroker:
        cfg = self.config
        state = BrokerState.from_dict(snapshot, cfg.history_points, cfg.max_trades, cfg.starting_cash) if snapshot else None
        return PaperBroker(cfg.starting_cash, cfg.history_points, cfg.max_trades, self.clock, self.periods, state)

    # ---------- periodic activities ----------
    def tick(self) -> int:
        cfg, market = self.config, self.market
        k, now = market.tick + 1, self.clock()
        market.sentiment = step_sentiment(market.sentiment, self.rng, cfg.price.sentiment_step)
        for asset in market.assets.values():
            advance_price(asset, market.sentiment, event_impact(asset, market.events, k), self.rng,
                          cfg.price, now, cfg.ticks_per_day, dt=1.0 / self.periods)
        market.tick, market.updated_at = k, now
        prune_expired(market, k)
        self.broker.record_equity(market.prices(), now)
        self.refresh_missions()
        log.debug("tick %d sentiment=%+.3f equity=%.2f", k, market.sentiment, self.equity)
        return k

    def check_events(self) -> Optional[MarketEvent]:
        return maybe_spawn_event(self.clock(), self.market, self.rng, self.config.events)

    def refresh_books(self) -> Dict[str, OrderBook]:
        self.books = {s: build_depth(a.price, self.rng, self.config.book) for s, a in self.market.assets.items()}
        return self.books

    def advance(self, n: int = 1) -> None:
        """Runs ``n`` ticks with event checks and book refreshes on their tick cadences."""
        cfg = self.config
        book_every = max(1, round(cfg.book_refresh_ms / cfg.tick_ms))
        for _ in range(n):
            k = self.tick()
            if k % cfg.event_every_ticks == 0: self.check_events()
            if k % book_every == 0: self.refresh_books()

    # ---------- orders ----------
    def execute(self, side, symbol: str, quantity, order_type="market", price: Optional[float] = None) -> Trade:
        try:
            trade = self.broker.execute(self.market, side, symbol, quantity, order_type, price)
        except OrderError as e:
            log.warning("order rejected (%s): %s", e.reason.value, e)
            raise
        self.broker.record_equity(self.market.prices())
        self.refresh_missions()
        return trade

    def try_execute(self, side, symbol: str, quantity, order_type="market",
                    price: Optional[float] = None) -> Tuple[Optional[Trade], Optional[OrderError]]:
        try:
            return self.execute(side, symbol, quantity, order_type, price), None
        except OrderError as e:
            return None, e

    # ---------- derived views ----------
    @property
    def equity(self) -> float: return self.broker.mark_to_market(self.market.prices())

    def performance(self) -> PerformanceMetrics: return self.broker.performance()
    def positions_frame(self) -> pd.DataFrame: return self.broker.positions_frame(self.market.prices())
    def visible_events(self) -> List[MarketEvent]: return self.market.visible_events(self.config.events.max_visible)
    def trades(self) -> List[Trade]: return list(reversed(self.broker.state.trade_log))   # newest first

    def mission_context(self) -> MissionContext:
        st = self.broker.state
        return MissionContext(positions=dict(st.positions), cash=st.cash, equity=self.equity,
                              history=list(st.equity_history))

    def refresh_missions(self) -> Optional[Mission]:
        return evaluate(self.progression, self.missions, self.mission_context())

    # ---------- snapshot exchange ----------
    def snapshot(self) -> dict:
        return {**self.broker.state.to_dict(), **self.progression.to_dict(), "settings": self.config.settings()}

    def reset(self) -> None:
        self.broker = self._new_broker(None)
        self.progression = Progression()
        log.info("session reset to starting cash %.2f", self.config.starting_cash)
