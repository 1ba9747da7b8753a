"""
Candle store: ordered OHLC bars for one symbol/interval.
The last bar is the forming bar and is replaced in place until a newer bar arrives.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

import pandas as pd

from trend_bot.core.types import Candle

logger = logging.getLogger("trend_bot.market.candles")


class MergeKind(str, Enum):
    INSERTED = "inserted"
    REPLACED = "replaced"
    APPENDED = "appended"
    REJECTED = "rejected"


@dataclass(frozen=True)
class MergeResult:
    """Outcome of a merge; trimmed = bars dropped from the front by the size cap."""
    kind: MergeKind
    trimmed: int = 0

    @property
    def changed(self) -> bool:
        return self.kind != MergeKind.REJECTED


class CandleStore:
    """
    Single source of price truth. Only merge() and bootstrap() mutate it
    (clear() resets it on an interval switch).
    """

    def __init__(self, max_candles: Optional[int] = None):
        self.max_candles = max_candles
        self._candles: list[Candle] = []

    def __len__(self) -> int:
        return len(self._candles)

    @property
    def candles(self) -> tuple[Candle, ...]:
        """Immutable snapshot of the current sequence."""
        return tuple(self._candles)

    @property
    def last(self) -> Optional[Candle]:
        return self._candles[-1] if self._candles else None

    @property
    def closes(self) -> list[float]:
        return [c.close for c in self._candles]

    def merge(self, update: Candle) -> MergeResult:
        if not self._candles:
            self._candles.append(update)
            return MergeResult(MergeKind.INSERTED)
        last_time = self._candles[-1].time
        if update.time == last_time:
            self._candles[-1] = update
            return MergeResult(MergeKind.REPLACED)
        if update.time > last_time:
            self._candles.append(update)
            return MergeResult(MergeKind.APPENDED, trimmed=self._trim())
        logger.warning("Out-of-order candle dropped: time=%d < last=%d", update.time, last_time)
        return MergeResult(MergeKind.REJECTED)

    def bootstrap(self, history: Iterable[Candle]) -> int:
        """Replace the whole store with ordered history. Returns the number of bars kept."""
        bars: list[Candle] = []
        for candle in history:
            if bars and candle.time <= bars[-1].time:
                if candle.time == bars[-1].time:
                    bars[-1] = candle
                else:
                    logger.warning("History bar out of order dropped: time=%d", candle.time)
                continue
            bars.append(candle)
        self._candles = bars
        self._trim()
        return len(self._candles)

    def clear(self) -> None:
        self._candles = []

    def _trim(self) -> int:
        if self.max_candles is None or len(self._candles) <= self.max_candles:
            return 0
        excess = len(self._candles) - self.max_candles
        del self._candles[:excess]
        return excess

    def to_frame(self) -> pd.DataFrame:
        """OHLC DataFrame with columns: time, open, high, low, close (time as UTC datetime)."""
        df = pd.DataFrame(
            [(c.time, c.open, c.high, c.low, c.close) for c in self._candles],
            columns=["time", "open", "high", "low", "close"],
        )
        df["time"] = pd.to_datetime(df["time"], unit="s", utc=True)
        return df


def candles_from_frame(df: pd.DataFrame) -> list[Candle]:
    """Convert a kline DataFrame (time as datetime or unix seconds) into Candles."""
    if df.empty:
        return []
    times = df["time"]
    if pd.api.types.is_datetime64_any_dtype(times):
        if times.dt.tz is None:
            times = times.dt.tz_localize("UTC")
        seconds = (times - pd.Timestamp(0, tz="UTC")) // pd.Timedelta(seconds=1)
    else:
        seconds = times.astype("int64")
    return [
        Candle(time=int(t), open=float(o), high=float(h), low=float(lo), close=float(c))
        for t, o, h, lo, c in zip(seconds, df["open"], df["high"], df["low"], df["close"])
    ]
