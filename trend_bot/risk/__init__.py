"""Risk management: single position lifecycle, TP/SL, break-even trailing, simulated ledger."""

from trend_bot.risk.manager import PositionManager, OpenResult

__all__ = ["PositionManager", "OpenResult"]
