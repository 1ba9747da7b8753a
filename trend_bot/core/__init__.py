"""Core: config, types, logging."""

from trend_bot.core.config import load_config, Config, TradingSettings
from trend_bot.core.types import (
    Side,
    BotMode,
    MarketType,
    Severity,
    FeedStatus,
    Candle,
    IndicatorPoint,
    Position,
    ClosedTrade,
    LogEntry,
    EntrySignal,
    ExitSignal,
)
from trend_bot.core.logger import setup_logging, LogFeed

__all__ = [
    "load_config",
    "Config",
    "TradingSettings",
    "Side",
    "BotMode",
    "MarketType",
    "Severity",
    "FeedStatus",
    "Candle",
    "IndicatorPoint",
    "Position",
    "ClosedTrade",
    "LogEntry",
    "EntrySignal",
    "ExitSignal",
    "setup_logging",
    "LogFeed",
]
