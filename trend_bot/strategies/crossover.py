"""SMA fast/mid crossover strategy filtered by price against the slow SMA."""

from __future__ import annotations
from typing import Optional

from trend_bot.core.types import EntrySignal, ExitSignal, Position, Side
from trend_bot.strategies.base import BaseStrategy, MarketContext


def _cross(ctx: MarketContext) -> int:
    """+1 fast crossed above mid, -1 crossed below, 0 no fresh crossover."""
    prev_diff = ctx.fast[-2].value - ctx.mid[-2].value
    diff = ctx.fast[-1].value - ctx.mid[-1].value
    if prev_diff <= 0 < diff:
        return 1
    if prev_diff >= 0 > diff:
        return -1
    return 0


class SmaCrossoverStrategy(BaseStrategy):
    """
    Long: fast crosses above mid and price > slow.
    Short: fast crosses below mid and price < slow.
    Exit on the opposite crossover.
    """

    min_points = 2

    def entry_signal(self, ctx: MarketContext) -> Optional[EntrySignal]:
        cross = _cross(ctx)
        slow = ctx.slow[-1].value
        f, m, s = self.periods
        if cross > 0 and ctx.price > slow:
            return EntrySignal(Side.LONG, ctx.price, f"Crossover: {f} above {m}, price > SMA{s}")
        if cross < 0 and ctx.price < slow:
            return EntrySignal(Side.SHORT, ctx.price, f"Crossover: {f} below {m}, price < SMA{s}")
        return None

    def exit_signal(self, ctx: MarketContext, position: Position) -> Optional[ExitSignal]:
        cross = _cross(ctx)
        f, m = self.fast_period, self.mid_period
        if position.side == Side.LONG and cross < 0:
            return ExitSignal(ctx.price, f"Signal Exit ({f} crossed below {m})")
        if position.side == Side.SHORT and cross > 0:
            return ExitSignal(ctx.price, f"Signal Exit ({f} crossed above {m})")
        return None
