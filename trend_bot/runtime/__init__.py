"""Runtime: the single-writer engine and its published snapshot."""

from trend_bot.runtime.engine import EngineSnapshot, TradingEngine

__all__ = ["EngineSnapshot", "TradingEngine"]
