"""Abstract strategy: evaluates entry/exit signals from price and three SMA series."""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence, Union

from trend_bot.core.types import EntrySignal, ExitSignal, IndicatorPoint, Position, Side


@dataclass(frozen=True)
class MarketContext:
    """Inputs for one evaluation, taken from the current (possibly forming) bar."""
    price: float
    bar_time: int
    fast: Sequence[IndicatorPoint]
    mid: Sequence[IndicatorPoint]
    slow: Sequence[IndicatorPoint]
    last_close_time: int = 0
    allow_short: bool = True
    signal_exit: bool = False


class BaseStrategy(ABC):
    """
    Strategy flow shared by all variants:
    not enough SMA points -> nothing; in position -> exit check only;
    flat -> cooldown, entry check, short gating.
    """

    min_points: int = 1

    def __init__(self, fast_period: int = 5, mid_period: int = 10, slow_period: int = 20):
        self.fast_period = fast_period
        self.mid_period = mid_period
        self.slow_period = slow_period

    @property
    def periods(self) -> tuple[int, int, int]:
        return (self.fast_period, self.mid_period, self.slow_period)

    def ready(self, ctx: MarketContext) -> bool:
        return all(len(s) >= self.min_points for s in (ctx.fast, ctx.mid, ctx.slow))

    def evaluate(self, ctx: MarketContext, position: Optional[Position]) -> Optional[Union[EntrySignal, ExitSignal]]:
        if not self.ready(ctx):
            return None
        if position is not None:
            return self.exit_signal(ctx, position)
        # At most one entry per bar: wait for a bar newer than the one that closed the last trade.
        if ctx.bar_time <= ctx.last_close_time:
            return None
        signal = self.entry_signal(ctx)
        if signal is not None and signal.side == Side.SHORT and not ctx.allow_short:
            return None
        return signal

    @abstractmethod
    def entry_signal(self, ctx: MarketContext) -> Optional[EntrySignal]:
        """Return an entry for the current price, or None."""
        pass

    @abstractmethod
    def exit_signal(self, ctx: MarketContext, position: Position) -> Optional[ExitSignal]:
        """Return a signal exit for the open position, or None."""
        pass
