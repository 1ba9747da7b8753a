"""
Simple moving averages over the candle store.

Full recomputation and incremental updates go through the same window
routine, so both paths produce identical floats for identical input.
"""

from __future__ import annotations
from typing import Iterable, Sequence

from trend_bot.core.types import Candle, IndicatorPoint
from trend_bot.market.candles import MergeKind, MergeResult


def _window_mean(closes: Sequence[float], end: int, period: int) -> float:
    """Mean of closes[end - period + 1 .. end], summed left to right."""
    total = 0.0
    for i in range(end - period + 1, end + 1):
        total += closes[i]
    return total / period


def sma(candles: Sequence[Candle], period: int) -> list[IndicatorPoint]:
    """SMA(period) aligned to candle times. Empty if fewer than period candles."""
    if period <= 0:
        raise ValueError(f"SMA period must be positive, got {period}")
    if len(candles) < period:
        return []
    closes = [c.close for c in candles]
    return [
        IndicatorPoint(time=candles[i].time, value=_window_mean(closes, i, period))
        for i in range(period - 1, len(candles))
    ]


class IndicatorEngine:
    """Keeps one SMA series per period in sync with the candle store."""

    def __init__(self, periods: Iterable[int] = (5, 10, 20)):
        self.periods = tuple(periods)
        self._series: dict[int, list[IndicatorPoint]] = {p: [] for p in self.periods}

    def series(self, period: int) -> list[IndicatorPoint]:
        return self._series[period]

    def snapshot(self) -> dict[int, tuple[IndicatorPoint, ...]]:
        return {p: tuple(s) for p, s in self._series.items()}

    def ready(self, min_points: int = 1) -> bool:
        """True when every series has at least min_points values."""
        return all(len(s) >= min_points for s in self._series.values())

    def rebuild(self, candles: Sequence[Candle]) -> None:
        """Full recomputation."""
        for period in self.periods:
            self._series[period] = sma(candles, period)

    def apply(self, candles: Sequence[Candle], result: MergeResult) -> None:
        """Incremental update after a store merge. Falls back to rebuild when the shape is unexpected."""
        if result.kind == MergeKind.REJECTED:
            return
        if result.kind == MergeKind.INSERTED:
            self.rebuild(candles)
            return
        closes = [c.close for c in candles]
        last = len(candles) - 1
        for period in self.periods:
            series = self._series[period]
            target = max(0, len(candles) - period + 1)
            if target == 0:
                series.clear()
                continue
            point = IndicatorPoint(time=candles[last].time, value=_window_mean(closes, last, period))
            if result.kind == MergeKind.REPLACED:
                if not series or series[-1].time != point.time:
                    self._series[period] = sma(candles, period)
                    continue
                series[-1] = point
            else:
                series.append(point)
                if len(series) > target:
                    del series[: len(series) - target]
            if len(series) != target:
                self._series[period] = sma(candles, period)

    def clear(self) -> None:
        for period in self.periods:
            self._series[period] = []
