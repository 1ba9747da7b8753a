"""
Core data types for candles, indicator points, positions, trades and log entries.
"""

from __future__ import annotations
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class Side(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"


class BotMode(str, Enum):
    SIMULATED = "SIMULATED"
    LIVE_A = "LIVE_A"  # Binance
    LIVE_B = "LIVE_B"  # BingX


class MarketType(str, Enum):
    SPOT = "SPOT"
    FUTURES = "FUTURES"


class Severity(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class FeedStatus(str, Enum):
    DISCONNECTED = "DISCONNECTED"
    LOADING_HISTORY = "LOADING_HISTORY"
    LIVE = "LIVE"


def short_id() -> str:
    """Short display id for positions. Not a security boundary."""
    return uuid.uuid4().hex[:8]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Candle:
    """OHLC bar. time is the bar open in unix seconds."""
    time: int
    open: float
    high: float
    low: float
    close: float


@dataclass(frozen=True)
class IndicatorPoint:
    time: int
    value: float


@dataclass
class Position:
    """Open position state. Only stop_loss and trailing_active change after open."""
    side: Side
    entry_price: float
    take_profit: float
    stop_loss: float
    margin_amount: float
    leverage: int
    trigger_reason: str
    mode: BotMode = BotMode.SIMULATED
    opened_at: datetime = field(default_factory=utc_now)
    trailing_active: bool = False
    id: str = field(default_factory=short_id)


@dataclass(frozen=True)
class ClosedTrade:
    """Closed trade for history and analytics."""
    id: str
    side: Side
    entry_price: float
    take_profit: float
    stop_loss: float
    margin_amount: float
    leverage: int
    opened_at: datetime
    trigger_reason: str
    trailing_active: bool
    exit_price: float
    closed_at: datetime
    pnl: float
    pnl_percent: float
    close_reason: str  # "Take Profit" | "Stop Loss" | "Manual Close" | "Signal Exit (...)"
    mode: BotMode

    @classmethod
    def from_position(
        cls,
        position: Position,
        exit_price: float,
        pnl: float,
        pnl_percent: float,
        close_reason: str,
        closed_at: Optional[datetime] = None,
    ) -> "ClosedTrade":
        return cls(
            id=position.id,
            side=position.side,
            entry_price=position.entry_price,
            take_profit=position.take_profit,
            stop_loss=position.stop_loss,
            margin_amount=position.margin_amount,
            leverage=position.leverage,
            opened_at=position.opened_at,
            trigger_reason=position.trigger_reason,
            trailing_active=position.trailing_active,
            exit_price=exit_price,
            closed_at=closed_at or utc_now(),
            pnl=pnl,
            pnl_percent=pnl_percent,
            close_reason=close_reason,
            mode=position.mode,
        )


@dataclass(frozen=True)
class LogEntry:
    timestamp: datetime
    message: str
    severity: Severity


@dataclass(frozen=True)
class EntrySignal:
    """Confirmed entry: open side at price."""
    side: Side
    price: float
    reason: str


@dataclass(frozen=True)
class ExitSignal:
    """Confirmed signal exit for the active position."""
    price: float
    reason: str
