"""Unit tests for market.candles."""

import pandas as pd

from trend_bot.core.types import Candle
from trend_bot.market.candles import CandleStore, MergeKind, candles_from_frame


def bar(t: int, close: float = 100.0) -> Candle:
    return Candle(time=t, open=close, high=close, low=close, close=close)


def test_merge_into_empty_store_inserts():
    store = CandleStore()
    r = store.merge(bar(60))
    assert r.kind == MergeKind.INSERTED
    assert len(store) == 1


def test_merge_same_time_replaces_forming_bar():
    store = CandleStore()
    store.bootstrap([bar(60), bar(120, 100.0)])
    r = store.merge(bar(120, 101.5))
    assert r.kind == MergeKind.REPLACED
    assert len(store) == 2
    assert store.last.close == 101.5


def test_merge_newer_time_appends_one():
    store = CandleStore()
    store.bootstrap([bar(60), bar(120)])
    r = store.merge(bar(180, 99.0))
    assert r.kind == MergeKind.APPENDED
    assert len(store) == 3
    assert store.last.time == 180


def test_merge_older_time_is_dropped():
    store = CandleStore()
    store.bootstrap([bar(60), bar(120)])
    before = store.candles
    r = store.merge(bar(60, 5.0))
    assert r.kind == MergeKind.REJECTED
    assert not r.changed
    assert store.candles == before


def test_bootstrap_replaces_whole_store():
    store = CandleStore()
    store.bootstrap([bar(60), bar(120), bar(180)])
    store.bootstrap([bar(600), bar(660)])
    assert [c.time for c in store.candles] == [600, 660]


def test_bootstrap_keeps_history_ordered():
    store = CandleStore()
    store.bootstrap([bar(60, 1.0), bar(120, 2.0), bar(120, 3.0), bar(90, 4.0), bar(180, 5.0)])
    assert [(c.time, c.close) for c in store.candles] == [(60, 1.0), (120, 3.0), (180, 5.0)]


def test_max_candles_drops_oldest():
    store = CandleStore(max_candles=3)
    store.bootstrap([bar(60), bar(120), bar(180)])
    r = store.merge(bar(240))
    assert r.kind == MergeKind.APPENDED
    assert r.trimmed == 1
    assert [c.time for c in store.candles] == [120, 180, 240]


def test_snapshot_is_not_affected_by_later_merges():
    store = CandleStore()
    store.bootstrap([bar(60)])
    snap = store.candles
    store.merge(bar(60, 42.0))
    assert snap[0].close == 100.0


def test_frame_round_trip():
    store = CandleStore()
    store.bootstrap([bar(1_700_000_000, 10.0), bar(1_700_000_060, 11.0)])
    df = store.to_frame()
    assert list(df.columns) == ["time", "open", "high", "low", "close"]
    assert candles_from_frame(df) == list(store.candles)


def test_candles_from_frame_with_unix_seconds():
    df = pd.DataFrame({"time": [60, 120], "open": [1, 2], "high": [2, 3], "low": [0.5, 1.5], "close": [1.5, 2.5]})
    candles = candles_from_frame(df)
    assert candles[1] == Candle(time=120, open=2.0, high=3.0, low=1.5, close=2.5)


def test_candles_from_empty_frame():
    assert candles_from_frame(pd.DataFrame(columns=["time", "open", "high", "low", "close"])) == []
