"""Unit tests for market.indicators."""

import math

import pytest

from trend_bot.core.types import Candle
from trend_bot.market.candles import CandleStore
from trend_bot.market.indicators import IndicatorEngine, sma


def bars(closes, start=60):
    return [Candle(time=start + 60 * i, open=c, high=c, low=c, close=c) for i, c in enumerate(closes)]


def test_sma_constant_series():
    candles = bars([42.0] * 30)
    out = sma(candles, 5)
    assert len(out) == 26
    assert all(p.value == 42.0 for p in out)


def test_sma_insufficient_data_is_empty():
    assert sma(bars([1.0, 2.0, 3.0, 4.0]), 5) == []


def test_sma_length_and_alignment():
    candles = bars([float(i) for i in range(25)])
    out = sma(candles, 20)
    assert len(out) == len(candles) - 20 + 1
    assert out[0].time == candles[19].time
    assert out[-1].time == candles[-1].time


def test_sma_values():
    out = sma(bars([1.0, 2.0, 3.0, 4.0, 5.0, 6.0]), 3)
    assert [p.value for p in out] == [2.0, 3.0, 4.0, 5.0]


def test_sma_invalid_period():
    with pytest.raises(ValueError):
        sma(bars([1.0]), 0)


def test_incremental_updates_match_full_recompute():
    store = CandleStore(max_candles=25)
    engine = IndicatorEngine((5, 10, 20))
    for i in range(120):
        t = 60 * (i // 3 + 1)  # three ticks per bar
        close = 100.0 + math.sin(i * 0.7) * 3.1 + i * 0.013
        result = store.merge(Candle(time=t, open=close, high=close, low=close, close=close))
        engine.apply(store.candles, result)
        for p in (5, 10, 20):
            assert engine.series(p) == sma(store.candles, p)


def test_rejected_merge_leaves_series_untouched():
    store = CandleStore()
    engine = IndicatorEngine((5,))
    store.bootstrap(bars([float(i) for i in range(10)]))
    engine.rebuild(store.candles)
    before = list(engine.series(5))
    result = store.merge(Candle(time=1, open=1.0, high=1.0, low=1.0, close=1.0))
    engine.apply(store.candles, result)
    assert engine.series(5) == before


def test_ready_and_clear():
    engine = IndicatorEngine((5, 10, 20))
    engine.rebuild(bars([1.0] * 19))
    assert not engine.ready()
    engine.rebuild(bars([1.0] * 21))
    assert engine.ready(min_points=2)
    engine.clear()
    assert engine.snapshot() == {5: (), 10: (), 20: ()}
