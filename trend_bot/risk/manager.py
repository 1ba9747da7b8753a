"""
Position & risk manager: single active position, simulated balance,
TP/SL and break-even trailing, realized-PnL accounting on close.

PnL = margin * leverage * price_change_fraction, so a loss beyond the margin
can drive the simulated balance negative under high leverage.
"""

from __future__ import annotations
import logging
from collections import deque
from dataclasses import dataclass
from typing import Optional

from trend_bot.core.config import TradingSettings
from trend_bot.core.types import ClosedTrade, Position, Side

logger = logging.getLogger("trend_bot.risk")

TRAILING_TRIGGER_FRACTION = 0.5  # of the entry -> TP distance
BREAKEVEN_FEE_BUFFER = 0.0005  # 0.05% beyond entry covers fees

SUCCESS = {"severity": "success"}


@dataclass
class OpenResult:
    """Result of an open request: allowed or rejected + reason."""
    allowed: bool
    position: Optional[Position] = None
    reason: str = ""


def price_change_fraction(side: Side, entry: float, price: float) -> float:
    if side == Side.LONG:
        return (price - entry) / entry
    return (entry - price) / entry


def protective_levels(side: Side, price: float, take_profit_pct: float, stop_loss_pct: float) -> tuple[float, float]:
    """(take_profit, stop_loss) from percentage offsets around price."""
    tp = take_profit_pct / 100.0
    sl = stop_loss_pct / 100.0
    if side == Side.LONG:
        return price * (1 + tp), price * (1 - sl)
    return price * (1 - tp), price * (1 + sl)


class PositionManager:
    """
    Owns the one active position (or None), the simulated balance and the
    closed-trade history (newest first, capped). Not thread-safe: the engine
    is the only caller.
    """

    def __init__(
        self,
        settings: TradingSettings,
        initial_balance: float = 10000.0,
        max_trades: int = 500,
    ):
        self.settings = settings
        self.initial_balance = initial_balance
        self.balance = initial_balance
        self.position: Optional[Position] = None
        self.trades: deque[ClosedTrade] = deque(maxlen=max_trades)
        self.last_close_time: int = 0
        self._last_intent_time: Optional[int] = None

    def open(self, side: Side, price: float, reason: str, bar_time: Optional[int] = None) -> OpenResult:
        if self.position is not None:
            logger.error(
                "Refusing to open %s: position %s (%s) already open",
                side.value, self.position.id, self.position.side.value,
            )
            return OpenResult(allowed=False, reason="position already open")
        s = self.settings
        lev = s.leverage
        if not s.simulated:
            # Order placement for live modes is external: log the intent once per bar.
            if bar_time is not None and bar_time == self._last_intent_time:
                return OpenResult(allowed=False, reason="intent already emitted for this bar")
            self._last_intent_time = bar_time
            logger.warning("SIGNAL: Open %s @ %.2f (x%d) [%s]", side.value, price, lev, s.mode.value)
            return OpenResult(allowed=False, reason="live mode: intent only")

        amount = s.margin_amount
        if self.balance < amount:
            logger.error("Simulation error: insufficient funds (balance %.2f < margin %.2f)", self.balance, amount)
            return OpenResult(allowed=False, reason="insufficient funds")

        take_profit, stop_loss = protective_levels(side, price, s.take_profit_pct, s.stop_loss_pct)
        self.balance -= amount
        self.position = Position(
            side=side,
            entry_price=price,
            take_profit=take_profit,
            stop_loss=stop_loss,
            margin_amount=amount,
            leverage=lev,
            trigger_reason=reason,
            mode=s.mode,
        )
        logger.info(
            "SIM %s OPENED @ %.2f (x%d). TP: %s%%, SL: %s%% [%s]",
            side.value, price, lev, s.take_profit_pct, s.stop_loss_pct, reason,
            extra=SUCCESS,
        )
        return OpenResult(allowed=True, position=self.position)

    def check_tp_sl(self, price: float, bar_time: int) -> Optional[ClosedTrade]:
        """Close on take-profit or stop-loss hit. Take-profit is checked first."""
        pos = self.position
        if pos is None:
            return None
        if pos.side == Side.LONG:
            hit_tp = price >= pos.take_profit
            hit_sl = price <= pos.stop_loss
        else:
            hit_tp = price <= pos.take_profit
            hit_sl = price >= pos.stop_loss
        if hit_tp:
            return self.close(price, "Take Profit", bar_time)
        if hit_sl:
            return self.close(price, "Stop Loss", bar_time)
        return None

    def check_trailing(self, price: float) -> bool:
        """Move SL to break-even (+fee buffer) once price covers half the TP distance. One-way."""
        pos = self.position
        if pos is None or not self.settings.trailing_stop or pos.trailing_active:
            return False
        trigger = abs(pos.take_profit - pos.entry_price) * TRAILING_TRIGGER_FRACTION
        if pos.side == Side.LONG:
            if price < pos.entry_price + trigger:
                return False
            new_sl = pos.entry_price * (1 + BREAKEVEN_FEE_BUFFER)
        else:
            if price > pos.entry_price - trigger:
                return False
            new_sl = pos.entry_price * (1 - BREAKEVEN_FEE_BUFFER)
        pos.stop_loss = new_sl
        pos.trailing_active = True
        logger.info("Trailing Stop Activated: SL moved to Break Even (%.2f)", new_sl)
        return True

    def on_tick(self, price: float, bar_time: int) -> Optional[ClosedTrade]:
        """Per-tick risk evaluation: TP/SL first, trailing only if the position survived."""
        trade = self.check_tp_sl(price, bar_time)
        if trade is None and self.position is not None:
            self.check_trailing(price)
        return trade

    def close(self, price: float, reason: str, bar_time: int) -> Optional[ClosedTrade]:
        pos = self.position
        if pos is None:
            return None
        fraction = price_change_fraction(pos.side, pos.entry_price, price)
        pnl = pos.margin_amount * pos.leverage * fraction
        pnl_percent = fraction * pos.leverage * 100
        self.balance += pos.margin_amount + pnl
        trade = ClosedTrade.from_position(pos, exit_price=price, pnl=pnl, pnl_percent=pnl_percent, close_reason=reason)
        self.trades.appendleft(trade)
        self.position = None
        self.last_close_time = bar_time
        sign = "+" if pnl >= 0 else ""
        log_args = (pos.side.value, price, sign, pnl, pnl_percent, reason)
        if pnl >= 0:
            logger.info("SIM %s CLOSED @ %.2f. PnL: %s%.2f (%.2f%%) [%s]", *log_args, extra=SUCCESS)
        else:
            logger.error("SIM %s CLOSED @ %.2f. PnL: %s%.2f (%.2f%%) [%s]", *log_args)
        return trade

    def manual_close(self, price: float, bar_time: int) -> Optional[ClosedTrade]:
        return self.close(price, "Manual Close", bar_time)

    def reset(self, balance: Optional[float] = None) -> None:
        """Restore the simulated balance and drop the position and trade history."""
        self.balance = self.initial_balance if balance is None else balance
        self.position = None
        self.trades.clear()
        self.last_close_time = 0
        self._last_intent_time = None
        logger.info("Simulation balance & history reset (balance %.2f)", self.balance)
