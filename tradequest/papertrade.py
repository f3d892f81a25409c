# tradequest/papertrade.py
import math, numbers, time
from collections import deque
from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Callable, Deque, Dict, Mapping, Optional, Union
import numpy as np, pandas as pd
from .market import Asset, MarketState
from .utils import PERIODS_PER_YEAR, annualize_sharpe, compute_metrics, get_logger, max_drawdown, safe_div

log = get_logger(__name__)

class OrderSide(str, Enum):
    BUY = "buy"
    SELL = "sell"

class OrderType(str, Enum):
    MARKET = "market"
    LIMIT = "limit"
    STOP = "stop"

class OrderRejection(str, Enum):
    INVALID_QUANTITY = "invalid_quantity"
    INVALID_PRICE = "invalid_price"
    UNKNOWN_ASSET = "unknown_asset"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    INSUFFICIENT_SHARES = "insufficient_shares"

class OrderError(ValueError):
    reason: OrderRejection
class InvalidQuantity(OrderError): reason = OrderRejection.INVALID_QUANTITY
class InvalidPrice(OrderError): reason = OrderRejection.INVALID_PRICE
class UnknownAsset(OrderError): reason = OrderRejection.UNKNOWN_ASSET
class InsufficientFunds(OrderError): reason = OrderRejection.INSUFFICIENT_FUNDS
class InsufficientShares(OrderError): reason = OrderRejection.INSUFFICIENT_SHARES

@dataclass(frozen=True)
class Position:
    quantity: int
    average_cost: float
    total_invested: float

    def bought(self, qty: int, price: float) -> "Position":
        new_qty = self.quantity + qty
        avg = (self.average_cost * self.quantity + price * qty) / new_qty
        return Position(new_qty, avg, avg * new_qty)

    def sold(self, qty: int) -> Optional["Position"]:
        left = self.quantity - qty
        return Position(left, self.average_cost, self.average_cost * left) if left > 0 else None

@dataclass(frozen=True)
class Trade:
    timestamp: float
    symbol: str
    side: OrderSide
    quantity: int
    price: float
    cash_delta: float
    order_type: OrderType = OrderType.MARKET
    realized_pnl: float = 0.0

    def to_dict(self) -> dict:
        d = asdict(self); d["side"] = self.side.value; d["order_type"] = self.order_type.value
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "Trade":
        return cls(timestamp=float(d["timestamp"]), symbol=d["symbol"], side=OrderSide(d["side"]),
                   quantity=int(d["quantity"]), price=float(d["price"]), cash_delta=float(d["cash_delta"]),
                   order_type=OrderType(d.get("order_type", "market")),
                   realized_pnl=float(d.get("realized_pnl", 0.0)))

@dataclass(frozen=True)
class EquityPoint:
    value: float
    timestamp: float

@dataclass(frozen=True)
class PerformanceMetrics:
    total_trades: int = 0
    total_profit: float = 0.0
    best_trade: float = 0.0
    worst_trade: float = 0.0
    win_rate: float = 0.0
    sharpe_ratio: float = 0.0
    max_drawdown: float = 0.0

    def record_sell(self, profit: float) -> "PerformanceMetrics":
        n = self.total_trades + 1
        first = self.total_trades == 0
        return replace(self, total_trades=n, total_profit=self.total_profit + profit,
                       best_trade=profit if first else max(self.best_trade, profit),
                       worst_trade=profit if first else min(self.worst_trade, profit),
                       win_rate=(self.win_rate * (n - 1) + (1.0 if profit > 0 else 0.0)) / n)

@dataclass
class BrokerState:
    cash: float
    positions: Dict[str, Position] = field(default_factory=dict)
    realized_pnl: float = 0.0
    equity_history: Deque[EquityPoint] = field(default_factory=lambda: deque(maxlen=240))
    trade_log: Deque[Trade] = field(default_factory=lambda: deque(maxlen=200))
    metrics: PerformanceMetrics = field(default_factory=PerformanceMetrics)

    def to_dict(self) -> dict:
        return {
            "cash": self.cash,
            "positions": {s: asdict(p) for s, p in self.positions.items()},
            "realized_pnl": self.realized_pnl,
            "history": [asdict(p) for p in self.equity_history],
            "trades": [t.to_dict() for t in self.trade_log],
            "metrics": asdict(self.metrics),
        }

    @classmethod
    def from_dict(cls, d: dict, history_points: int = 240, max_trades: int = 200,
                  default_cash: float = 0.0) -> "BrokerState":
        positions = {}
        for s, p in (d.get("positions") or {}).items():
            qty, avg = int(p["quantity"]), float(p["average_cost"])
            if qty > 0: positions[s] = Position(qty, avg, avg * qty)
        known = PerformanceMetrics.__dataclass_fields__
        return cls(cash=float(d.get("cash", default_cash)), positions=positions,
                   realized_pnl=float(d.get("realized_pnl", 0.0)),
                   equity_history=deque((EquityPoint(float(h["value"]), float(h["timestamp"]))
                                         for h in d.get("history") or []), maxlen=history_points),
                   trade_log=deque((Trade.from_dict(t) for t in d.get("trades") or []), maxlen=max_trades),
                   metrics=PerformanceMetrics(**{k: v for k, v in (d.get("metrics") or {}).items() if k in known}))

def _coerce_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, numbers.Real):
        raise InvalidQuantity(f"quantity must be a whole number, got {quantity!r}")
    if not isinstance(quantity, numbers.Integral) and not (math.isfinite(quantity) and float(quantity).is_integer()):
        raise InvalidQuantity(f"quantity must be a whole number, got {quantity!r}")
    q = int(quantity)
    if q <= 0: raise InvalidQuantity(f"quantity must be positive, got {q}")
    return q

class PaperBroker:
    def __init__(self, initial_capital: float = 10_000.0, history_points: int = 240, max_trades: int = 200,
                 clock: Callable[[], float] = time.time, periods: int = PERIODS_PER_YEAR,
                 state: Optional[BrokerState] = None):
        self.initial_capital = initial_capital
        self.clock = clock
        self.periods = periods
        self.state = state or BrokerState(cash=initial_capital, equity_history=deque(maxlen=history_points),
                                          trade_log=deque(maxlen=max_trades))

    def mark_to_market(self, prices: Mapping[str, float]) -> float:
        if not self.state.positions: return float(self.state.cash)
        qty = pd.Series({s: p.quantity for s, p in self.state.positions.items()}, dtype=float)
        px = pd.Series(prices, dtype=float).reindex(qty.index).fillna(0.0)
        return float(self.state.cash + (qty * px).sum())

    def record_equity(self, prices: Mapping[str, float], timestamp: Optional[float] = None) -> EquityPoint:
        pt = EquityPoint(self.mark_to_market(prices), self.clock() if timestamp is None else timestamp)
        self.state.equity_history.append(pt)
        return pt

    @staticmethod
    def fill_price(side: OrderSide, asset: Asset, order_type: OrderType, price: Optional[float]) -> float:
        if order_type is OrderType.MARKET:
            return asset.ask if side is OrderSide.BUY else asset.bid
        if order_type in (OrderType.LIMIT, OrderType.STOP):
            # no resting orders: limit/stop fill immediately at the requested price
            if (isinstance(price, bool) or not isinstance(price, numbers.Real)
                    or not math.isfinite(price) or price <= 0):
                raise InvalidPrice(f"{order_type.value} order needs a positive price, got {price!r}")
            return float(price)
        raise ValueError(f"unhandled order type: {order_type}")

    def execute(self, market: MarketState, side: Union[OrderSide, str], symbol: str, quantity,
                order_type: Union[OrderType, str] = OrderType.MARKET, price: Optional[float] = None) -> Trade:
        """
        Validate and apply one order against ``market``'s current quotes.
        Raises an ``OrderError`` subclass and leaves the ledger untouched on rejection.
        """
        side, order_type = OrderSide(side.lower()), OrderType(order_type.lower())
        qty = _coerce_quantity(quantity)
        asset = market.get(symbol)
        if asset is None: raise UnknownAsset(f"unknown symbol {symbol!r}")
        fill = self.fill_price(side, asset, order_type, price)
        st = self.state
        pos = st.positions.get(symbol)
        notional = fill * qty
        if side is OrderSide.BUY:
            if notional > st.cash:
                raise InsufficientFunds(f"need {notional:.2f} to buy {qty} {symbol}, have {st.cash:.2f}")
            new_pos = (pos or Position(0, fill, 0.0)).bought(qty, fill)
            trade = Trade(self.clock(), symbol, side, qty, fill, -notional, order_type)
            st.cash -= notional
            st.positions[symbol] = new_pos
        elif side is OrderSide.SELL:
            held = pos.quantity if pos else 0
            if held < qty:
                raise InsufficientShares(f"cannot sell {qty} {symbol}, holding {held}")
            profit = (fill - pos.average_cost) * qty
            new_pos = pos.sold(qty)
            trade = Trade(self.clock(), symbol, side, qty, fill, notional, order_type, realized_pnl=profit)
            st.cash += notional
            if new_pos is None: del st.positions[symbol]
            else: st.positions[symbol] = new_pos
            st.realized_pnl += profit
            st.metrics = st.metrics.record_sell(profit)
        else:
            raise ValueError(f"unhandled order side: {side}")
        st.trade_log.append(trade)
        log.info("filled %s %d %s @ %.4f (%s)", side.value, qty, symbol, fill, order_type.value)
        return trade

    def performance(self) -> PerformanceMetrics:
        m = compute_metrics(self.state.equity_history, self.periods)
        return replace(self.state.metrics, **m)

    def positions_frame(self, prices: Mapping[str, float]) -> pd.DataFrame:
        rows = []
        for s, p in self.state.positions.items():
            px = float(prices.get(s, 0.0)); value = px * p.quantity
            rows.append({"symbol": s, "quantity": p.quantity, "average_cost": p.average_cost, "price": px,
                         "value": value, "pnl": value - p.total_invested,
                         "pnl_pct": safe_div(px - p.average_cost, p.average_cost)})
        cols = ["symbol", "quantity", "average_cost", "price", "value", "pnl", "pnl_pct"]
        return pd.DataFrame(rows, columns=cols).set_index("symbol")

    def results(self):
        hist = list(self.state.equity_history)
        eq = pd.Series([h.value for h in hist], index=pd.to_datetime([h.timestamp for h in hist], unit="s"),
                       name="equity", dtype=float).sort_index()
        ret = eq.pct_change().fillna(0.0)
        summary = pd.DataFrame([{
            "final_equity": float(eq.iloc[-1]) if not eq.empty else self.initial_capital,
            "total_return_%": float((eq.iloc[-1] / eq.iloc[0] - 1.0) * 100.0) if len(eq)>1 and eq.iloc[0] else 0.0,
            "vol_%": float(ret.std(ddof=0) * np.sqrt(self.periods) * 100.0) if len(ret)>1 else 0.0,
            "sharpe": float(annualize_sharpe(ret.iloc[1:], self.periods)),
            "max_drawdown_%": float(max_drawdown(eq) * 100.0),
        }])
        trades = pd.DataFrame([t.to_dict() for t in self.state.trade_log])
        return eq, ret, summary, trades
