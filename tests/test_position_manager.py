"""Unit tests for risk.manager."""

import pytest

from trend_bot.core.config import TradingSettings
from trend_bot.core.types import BotMode, Side
from trend_bot.risk.manager import PositionManager, protective_levels

BAR = 1_700_000_040


def manager(initial_balance=10000.0, **overrides):
    settings = TradingSettings(margin_amount=100.0, leverage=10, take_profit_pct=0.5, stop_loss_pct=0.3)
    for k, v in overrides.items():
        setattr(settings, k, v)
    return PositionManager(settings, initial_balance=initial_balance)


def test_protective_levels_long_and_short():
    tp, sl = protective_levels(Side.LONG, 20000.0, 0.5, 0.3)
    assert tp == pytest.approx(20100.0)
    assert sl == pytest.approx(19940.0)
    tp, sl = protective_levels(Side.SHORT, 20000.0, 0.5, 0.3)
    assert tp == pytest.approx(19900.0)
    assert sl == pytest.approx(20060.0)


def test_open_debits_margin():
    pm = manager()
    r = pm.open(Side.LONG, 20000.0, "test")
    assert r.allowed is True
    assert pm.position is r.position
    assert pm.balance == pytest.approx(9900.0)
    assert pm.position.leverage == 10
    assert pm.position.trailing_active is False


def test_close_long_accounting():
    # entry 20000, margin 100, x10, exit 20100 -> fraction 0.005, pnl 5.00, credit 105.00
    pm = manager()
    before_open = pm.balance
    pm.open(Side.LONG, 20000.0, "test")
    before_close = pm.balance
    trade = pm.close(20100.0, "Take Profit", BAR)
    assert trade.pnl == pytest.approx(5.0)
    assert trade.pnl_percent == pytest.approx(5.0)
    assert pm.balance - before_close == pytest.approx(105.0)
    assert pm.balance == pytest.approx(before_open + trade.pnl)
    assert pm.position is None
    assert pm.last_close_time == BAR


def test_close_short_accounting():
    pm = manager()
    pm.open(Side.SHORT, 20000.0, "test")
    trade = pm.close(20100.0, "Stop Loss", BAR)
    assert trade.pnl == pytest.approx(-5.0)
    assert pm.balance == pytest.approx(9995.0)


def test_insufficient_funds_rejected_without_state_change():
    pm = manager(initial_balance=50.0)
    r = pm.open(Side.LONG, 20000.0, "test")
    assert r.allowed is False
    assert "insufficient" in r.reason
    assert pm.position is None
    assert pm.balance == 50.0


def test_open_refused_while_position_exists():
    pm = manager()
    first = pm.open(Side.LONG, 20000.0, "first").position
    r = pm.open(Side.SHORT, 20010.0, "second")
    assert r.allowed is False
    assert pm.position is first
    assert pm.balance == pytest.approx(9900.0)


def test_live_mode_only_logs_intent_once_per_bar():
    pm = manager(mode=BotMode.LIVE_A)
    r = pm.open(Side.LONG, 20000.0, "test", bar_time=BAR)
    assert r.allowed is False
    assert "intent" in r.reason
    assert pm.position is None
    assert pm.balance == 10000.0
    again = pm.open(Side.LONG, 20001.0, "test", bar_time=BAR)
    assert "already" in again.reason


def test_take_profit_long():
    pm = manager()
    pm.open(Side.LONG, 20000.0, "test")
    assert pm.check_tp_sl(20050.0, BAR) is None
    trade = pm.check_tp_sl(20150.0, BAR)
    assert trade.close_reason == "Take Profit"
    assert trade.exit_price == 20150.0


def test_stop_loss_long():
    pm = manager()
    pm.open(Side.LONG, 20000.0, "test")
    trade = pm.check_tp_sl(19900.0, BAR)
    assert trade.close_reason == "Stop Loss"
    assert trade.pnl < 0


def test_take_profit_and_stop_loss_short():
    pm = manager()
    pm.open(Side.SHORT, 20000.0, "test")
    assert pm.check_tp_sl(19850.0, BAR).close_reason == "Take Profit"
    pm.open(Side.SHORT, 20000.0, "test")
    assert pm.check_tp_sl(20100.0, BAR + 60).close_reason == "Stop Loss"


def test_take_profit_wins_when_both_thresholds_hit():
    pm = manager()
    pm.open(Side.LONG, 20000.0, "test")
    pm.position.stop_loss = 20200.0  # misconfigured: SL above entry
    trade = pm.check_tp_sl(20150.0, BAR)
    assert trade.close_reason == "Take Profit"
    assert len(pm.trades) == 1
    assert pm.position is None


def test_trailing_moves_stop_to_breakeven_once():
    pm = manager(trailing_stop=True)
    pm.open(Side.LONG, 20000.0, "test")
    assert pm.check_trailing(20040.0) is False
    assert pm.check_trailing(20060.0) is True
    assert pm.position.trailing_active is True
    assert pm.position.stop_loss == pytest.approx(20010.0)
    # Price falls back under the trigger: stop stays at break-even
    assert pm.on_tick(20020.0, BAR) is None
    assert pm.position.trailing_active is True
    assert pm.position.stop_loss == pytest.approx(20010.0)
    assert pm.check_trailing(20080.0) is False
    trade = pm.on_tick(20005.0, BAR)
    assert trade.close_reason == "Stop Loss"
    assert trade.trailing_active is True
    assert trade.pnl > 0


def test_trailing_short():
    pm = manager(trailing_stop=True)
    pm.open(Side.SHORT, 20000.0, "test")
    assert pm.check_trailing(19940.0) is True
    assert pm.position.stop_loss == pytest.approx(19990.0)


def test_trailing_disabled():
    pm = manager(trailing_stop=False)
    pm.open(Side.LONG, 20000.0, "test")
    assert pm.check_trailing(20090.0) is False
    assert pm.position.stop_loss == pytest.approx(19940.0)


def test_on_tick_skips_trailing_after_close():
    pm = manager(trailing_stop=True)
    pm.open(Side.LONG, 20000.0, "test")
    trade = pm.on_tick(20200.0, BAR)
    assert trade.close_reason == "Take Profit"
    assert trade.trailing_active is False
    assert pm.position is None


def test_manual_close():
    pm = manager()
    pm.open(Side.LONG, 20000.0, "test")
    trade = pm.manual_close(20000.0, BAR)
    assert trade.close_reason == "Manual Close"
    assert trade.pnl == 0.0
    assert pm.balance == pytest.approx(10000.0)
    assert pm.manual_close(20000.0, BAR) is None


def test_large_leveraged_loss_can_drive_balance_negative():
    pm = manager(initial_balance=100.0, leverage=125)
    pm.open(Side.LONG, 20000.0, "test")
    trade = pm.close(19000.0, "Stop Loss", BAR)
    assert trade.pnl == pytest.approx(-625.0)
    assert pm.balance == pytest.approx(-525.0)


def test_history_newest_first_and_capped():
    settings = TradingSettings(margin_amount=10.0)
    pm = PositionManager(settings, initial_balance=1000.0, max_trades=2)
    for i, exit_price in enumerate((101.0, 102.0, 103.0)):
        pm.open(Side.LONG, 100.0, f"t{i}")
        pm.close(exit_price, "Manual Close", BAR + 60 * i)
    assert [t.exit_price for t in pm.trades] == [103.0, 102.0]


def test_reset():
    pm = manager()
    pm.open(Side.LONG, 20000.0, "test")
    pm.close(20100.0, "Take Profit", BAR)
    pm.open(Side.LONG, 20000.0, "test")
    pm.reset()
    assert pm.balance == 10000.0
    assert pm.position is None
    assert len(pm.trades) == 0
