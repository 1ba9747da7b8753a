"""Analytics: trade metrics (win rate, per-side win rate, profit factor, drawdown)."""

from trend_bot.analytics.metrics import (
    TradeMetrics,
    compute_metrics,
    win_rate,
    profit_factor,
    expectancy,
    max_drawdown,
)

__all__ = [
    "TradeMetrics",
    "compute_metrics",
    "win_rate",
    "profit_factor",
    "expectancy",
    "max_drawdown",
]
