"""Unit tests for analytics.metrics."""

import pytest

from trend_bot.analytics.metrics import (
    compute_metrics,
    expectancy,
    max_drawdown,
    profit_factor,
    win_rate,
)
from trend_bot.core.types import ClosedTrade, Position, Side


def trade(pnl, side=Side.LONG):
    pos = Position(
        side=side, entry_price=100.0, take_profit=101.0, stop_loss=99.0,
        margin_amount=100.0, leverage=1, trigger_reason="test",
    )
    return ClosedTrade.from_position(pos, exit_price=100.0 + pnl, pnl=pnl, pnl_percent=pnl, close_reason="Manual Close")


def test_win_rate():
    assert win_rate([1, -1, 1, 1]) == 75.0
    assert win_rate([]) == 0.0


def test_profit_factor():
    assert profit_factor([10, -5, 10, -5]) == 2.0
    assert profit_factor([10, 5]) == 15.0  # no losses -> gross profit
    assert profit_factor([-5, -5]) == 0.0
    assert profit_factor([]) == 0.0


def test_expectancy():
    assert expectancy([10, -5, 5]) == pytest.approx(10 / 3)
    assert expectancy([]) == 0.0


def test_max_drawdown():
    # cumulative 0 -> 10 -> 5 -> -5 -> -2  => peak 10, trough -5
    assert max_drawdown([10.0, -5.0, -10.0, 3.0]) == pytest.approx(15.0)
    assert max_drawdown([1.0, 2.0]) == 0.0


def test_empty_history():
    m = compute_metrics([])
    assert m.win_rate == 0.0
    assert m.profit_factor == 0.0
    assert m.total_trades == 0


def test_one_win_one_loss_of_equal_size():
    m = compute_metrics([trade(10.0), trade(-10.0)])
    assert m.win_rate == 50.0
    assert m.profit_factor == 1.0
    assert m.total_pnl == 0.0


def test_per_side_win_rates():
    history = [trade(5.0), trade(-2.0), trade(3.0, Side.SHORT)]
    m = compute_metrics(history)
    assert m.longs == 2
    assert m.shorts == 1
    assert m.long_win_rate == 50.0
    assert m.short_win_rate == 100.0
    assert m.gross_profit == 8.0
    assert m.gross_loss == 2.0
    assert m.profit_factor == 4.0


def test_side_without_trades_has_zero_win_rate():
    m = compute_metrics([trade(5.0)])
    assert m.short_win_rate == 0.0
    assert m.shorts == 0


def test_drawdown_uses_chronological_order():
    # history is newest first: chronological pnls are 10, -5, -10, 3
    history = [trade(3.0), trade(-10.0), trade(-5.0), trade(10.0)]
    assert compute_metrics(history).max_drawdown == pytest.approx(15.0)


def test_metrics_are_deterministic():
    history = [trade(5.0), trade(-2.0), trade(3.0, Side.SHORT)]
    assert compute_metrics(history) == compute_metrics(list(history))
