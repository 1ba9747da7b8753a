"""Strategies: base interface and implementations."""

from trend_bot.strategies.base import BaseStrategy, MarketContext
from trend_bot.strategies.alignment import SmaAlignmentStrategy
from trend_bot.strategies.crossover import SmaCrossoverStrategy


def build_strategy(config) -> BaseStrategy:
    """Strategy variant selected by config.strategy_variant."""
    periods = (config.sma_fast, config.sma_mid, config.sma_slow)
    if config.strategy_variant == "crossover":
        return SmaCrossoverStrategy(*periods)
    return SmaAlignmentStrategy(*periods, volatility_min=config.volatility_min)


__all__ = ["BaseStrategy", "MarketContext", "SmaAlignmentStrategy", "SmaCrossoverStrategy", "build_strategy"]
