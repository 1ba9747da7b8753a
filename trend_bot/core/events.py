"""
Events consumed by the single-writer engine: feed output and user commands.
Feed events carry the epoch of the subscription that produced them.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Union

from trend_bot.core.types import BotMode, Candle, FeedStatus, MarketType


@dataclass(frozen=True)
class HistoryLoaded:
    epoch: int
    candles: tuple[Candle, ...]


@dataclass(frozen=True)
class CandleUpdate:
    epoch: int
    candle: Candle
    closed: bool = False


@dataclass(frozen=True)
class FeedStatusChanged:
    epoch: int
    status: FeedStatus


@dataclass(frozen=True)
class Start:
    pass


@dataclass(frozen=True)
class Stop:
    pass


@dataclass(frozen=True)
class SetMode:
    mode: BotMode


@dataclass(frozen=True)
class SetMarketType:
    market_type: MarketType


@dataclass(frozen=True)
class UpdateSettings:
    """Partial settings change, e.g. UpdateSettings({"leverage": 10, "trailing_stop": True})."""
    changes: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SwitchInterval:
    interval: str


@dataclass(frozen=True)
class ManualClose:
    pass


@dataclass(frozen=True)
class ResetSimulation:
    pass


FeedEvent = Union[HistoryLoaded, CandleUpdate, FeedStatusChanged]
Command = Union[Start, Stop, SetMode, SetMarketType, UpdateSettings, SwitchInterval, ManualClose, ResetSimulation]
Event = Union[FeedEvent, Command]
