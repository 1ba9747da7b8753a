"""Market data: candle store, SMA indicators, kline sources and the live feed."""

from trend_bot.market.candles import CandleStore, MergeKind, MergeResult
from trend_bot.market.indicators import IndicatorEngine, sma
from trend_bot.market.base import KlineSource
from trend_bot.market.feed import MarketFeed, parse_kline_message

__all__ = [
    "CandleStore",
    "MergeKind",
    "MergeResult",
    "IndicatorEngine",
    "sma",
    "KlineSource",
    "MarketFeed",
    "parse_kline_message",
]
