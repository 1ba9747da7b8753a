"""
Performance metrics over closed-trade history: win rate (overall and per side),
profit factor, expectancy, max drawdown of the cumulative PnL curve.
Derived only from the history passed in; no state is kept between calls.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, List

import numpy as np

from trend_bot.core.types import ClosedTrade, Side


@dataclass(frozen=True)
class TradeMetrics:
    """Aggregate trade statistics. Rates are percentages (0-100)."""
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    win_rate: float = 0.0
    longs: int = 0
    shorts: int = 0
    long_win_rate: float = 0.0
    short_win_rate: float = 0.0
    total_pnl: float = 0.0
    gross_profit: float = 0.0
    gross_loss: float = 0.0
    profit_factor: float = 0.0
    expectancy: float = 0.0
    avg_win: float = 0.0
    avg_loss: float = 0.0
    max_drawdown: float = 0.0


def win_rate(pnls: List[float]) -> float:
    """Percentage of trades with positive PnL; 0 for no trades."""
    if not pnls:
        return 0.0
    return sum(1 for p in pnls if p > 0) / len(pnls) * 100.0


def profit_factor(pnls: List[float]) -> float:
    """Gross profit / gross loss. With no losses the gross profit itself is returned."""
    wins = sum(p for p in pnls if p > 0)
    losses = sum(-p for p in pnls if p < 0)
    if losses == 0:
        return wins
    return wins / losses


def expectancy(pnls: List[float]) -> float:
    """Average PnL per trade."""
    if not pnls:
        return 0.0
    return sum(pnls) / len(pnls)


def max_drawdown(pnls: List[float]) -> float:
    """Largest peak-to-trough drop of the cumulative PnL curve (chronological pnls), in quote currency."""
    if not pnls:
        return 0.0
    curve = np.concatenate(([0.0], np.cumsum(pnls)))
    peak = np.maximum.accumulate(curve)
    return float(np.max(peak - curve))


def compute_metrics(trades: Iterable[ClosedTrade]) -> TradeMetrics:
    """Metrics from trade history ordered newest first (as kept by the position manager)."""
    history = list(trades)
    if not history:
        return TradeMetrics()
    pnls = [t.pnl for t in history]
    long_pnls = [t.pnl for t in history if t.side == Side.LONG]
    short_pnls = [t.pnl for t in history if t.side == Side.SHORT]
    wins = [p for p in pnls if p > 0]
    losses = [p for p in pnls if p < 0]
    return TradeMetrics(
        total_trades=len(pnls),
        winning_trades=len(wins),
        losing_trades=len(losses),
        win_rate=win_rate(pnls),
        longs=len(long_pnls),
        shorts=len(short_pnls),
        long_win_rate=win_rate(long_pnls),
        short_win_rate=win_rate(short_pnls),
        total_pnl=sum(pnls),
        gross_profit=sum(wins),
        gross_loss=-sum(losses),
        profit_factor=profit_factor(pnls),
        expectancy=expectancy(pnls),
        avg_win=sum(wins) / len(wins) if wins else 0.0,
        avg_loss=sum(losses) / len(losses) if losses else 0.0,
        max_drawdown=max_drawdown(pnls[::-1]),
    )
