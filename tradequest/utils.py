# tradequest/utils.py
import logging
from typing import Iterable, Union
import numpy as np
import pandas as pd

TRADING_DAYS = 252
TICKS_PER_DAY = 78
PERIODS_PER_YEAR = TRADING_DAYS * TICKS_PER_DAY

def get_logger(name: str, level: str = "INFO") -> logging.Logger:
    """Named logger with a single console handler (no file output from the core)."""
    logger = logging.getLogger(name)
    if logger.handlers: return logger
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    ch = logging.StreamHandler()
    ch.setFormatter(logging.Formatter("%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                                      datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(ch)
    return logger

def clamp(v: float, lo: float, hi: float) -> float: return max(lo, min(hi, v))
def safe_div(a, b, default: float = 0.0): return a / b if b else default

def equity_series(history: Union[pd.Series, Iterable]) -> pd.Series:
    """Accepts a Series, plain numbers, or records carrying a ``value`` attribute/key."""
    if isinstance(history, pd.Series): return history.dropna().astype(float)
    vals = []
    for h in history:
        if isinstance(h, dict): vals.append(h["value"])
        else: vals.append(getattr(h, "value", h))
    return pd.Series(vals, dtype=float).dropna()

def simple_returns(equity: pd.Series) -> pd.Series:
    r = equity.pct_change().iloc[1:]
    return r.replace([np.inf, -np.inf], np.nan).dropna()

def annualize_sharpe(ret: pd.Series, periods: int = PERIODS_PER_YEAR) -> float:
    r = ret.dropna()
    if len(r) < 2: return 0.0
    # identical returns carry no risk; avoid dividing by float residue
    if np.allclose(r.to_numpy(), r.iloc[0], rtol=0.0, atol=1e-12): return 0.0
    sd = r.std(ddof=0)
    if not np.isfinite(sd) or sd == 0: return 0.0
    return float(np.sqrt(periods) * r.mean() / sd)

def max_drawdown(equity_curve: pd.Series) -> float:
    eq = equity_curve.dropna().astype(float)
    if eq.empty: return 0.0
    cummax = eq.cummax()
    dd = ((cummax - eq) / cummax).replace([np.inf, -np.inf], np.nan).fillna(0.0)
    return float(max(dd.max(), 0.0))

def compute_metrics(history, periods: int = PERIODS_PER_YEAR) -> dict:
    """Sharpe ratio and max drawdown of an equity history; zeros when fewer than 2 points."""
    eq = equity_series(history)
    if len(eq) < 2: return {"sharpe_ratio": 0.0, "max_drawdown": 0.0}
    return {"sharpe_ratio": annualize_sharpe(simple_returns(eq), periods),
            "max_drawdown": max_drawdown(eq)}
