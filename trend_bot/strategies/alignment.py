"""
SMA alignment strategy (5/10/20 by default).
Evaluated on every tick of the forming bar.
"""

from __future__ import annotations
from typing import Optional

from trend_bot.core.types import EntrySignal, ExitSignal, Position, Side
from trend_bot.strategies.base import BaseStrategy, MarketContext


class SmaAlignmentStrategy(BaseStrategy):
    """
    Long: price > SMA_fast > SMA_mid > SMA_slow.
    Short: price < SMA_fast < SMA_mid < SMA_slow.
    Skips flat markets where |SMA_fast - SMA_slow| / SMA_slow < volatility_min.
    Optional signal exit when SMA_fast crosses back through SMA_mid.
    """

    def __init__(
        self,
        fast_period: int = 5,
        mid_period: int = 10,
        slow_period: int = 20,
        volatility_min: float = 0.001,
    ):
        super().__init__(fast_period, mid_period, slow_period)
        self.volatility_min = volatility_min

    def entry_signal(self, ctx: MarketContext) -> Optional[EntrySignal]:
        price = ctx.price
        fast = ctx.fast[-1].value
        mid = ctx.mid[-1].value
        slow = ctx.slow[-1].value
        if slow == 0:
            return None
        volatility = abs(fast - slow) / slow
        if volatility < self.volatility_min:
            return None  # too flat

        f, m, s = self.periods
        if price > fast > mid > slow:
            return EntrySignal(Side.LONG, price, f"Aligned: {f}>{m}>{s} (Vol: {volatility * 100:.2f}%)")
        if price < fast < mid < slow:
            return EntrySignal(Side.SHORT, price, f"Aligned: {f}<{m}<{s} (Vol: {volatility * 100:.2f}%)")
        return None

    def exit_signal(self, ctx: MarketContext, position: Position) -> Optional[ExitSignal]:
        if not ctx.signal_exit:
            return None
        fast = ctx.fast[-1].value
        mid = ctx.mid[-1].value
        f, m = self.fast_period, self.mid_period
        if position.side == Side.LONG and fast < mid:
            return ExitSignal(ctx.price, f"Signal Exit ({f} < {m})")
        if position.side == Side.SHORT and fast > mid:
            return ExitSignal(ctx.price, f"Signal Exit ({f} > {m})")
        return None
