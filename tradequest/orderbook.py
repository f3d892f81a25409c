# tradequest/orderbook.py
from dataclasses import dataclass, field
from typing import List, Optional
import numpy as np, pandas as pd
from .config import BookModel

@dataclass(frozen=True)
class DepthLevel:
    price: float
    size: int

@dataclass(frozen=True)
class OrderBook:
    bids: List[DepthLevel] = field(default_factory=list)   # best (highest) first
    asks: List[DepthLevel] = field(default_factory=list)   # best (lowest) first

    def to_frame(self) -> pd.DataFrame:
        rows = [{"side": "bid", "level": i + 1, "price": l.price, "size": l.size} for i, l in enumerate(self.bids)]
        rows += [{"side": "ask", "level": i + 1, "price": l.price, "size": l.size} for i, l in enumerate(self.asks)]
        return pd.DataFrame(rows, columns=["side", "level", "price", "size"])

    def to_dict(self) -> dict:
        return {"bids": [{"price": l.price, "size": l.size} for l in self.bids],
                "asks": [{"price": l.price, "size": l.size} for l in self.asks]}

def build_depth(current_price: float, rng: np.random.Generator, model: Optional[BookModel] = None) -> OrderBook:
    # synthetic ladder, rebuilt from scratch on every refresh
    model = model or BookModel()
    step = current_price * model.spread
    lo, hi = model.size_range
    sizes = rng.integers(lo, hi + 1, size=2 * model.levels)
    bids = [DepthLevel(max(current_price - i * step, 0.0), int(sizes[i - 1])) for i in range(1, model.levels + 1)]
    asks = [DepthLevel(current_price + i * step, int(sizes[model.levels + i - 1])) for i in range(1, model.levels + 1)]
    return OrderBook(bids=bids, asks=asks)
