#!/usr/bin/env python3
"""
SMA Trend Bot CLI: run | history
Usage:
  python main.py run [--config config.yaml] [--interval 5m] [--start]
  python main.py history [--config config.yaml] [--interval 5m] [--rows 10]
"""

from __future__ import annotations
import argparse
import asyncio
import contextlib
import logging
import sys
from pathlib import Path

# Project root
ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from trend_bot.core.config import Config, load_config
from trend_bot.core.events import Start
from trend_bot.core.logger import LogFeed, setup_logging
from trend_bot.market.binance import BinanceKlineSource
from trend_bot.market.candles import CandleStore, candles_from_frame
from trend_bot.market.feed import MarketFeed
from trend_bot.market.indicators import IndicatorEngine
from trend_bot.runtime.engine import TradingEngine
from trend_bot.utils.telegram import TelegramNotifier
from trend_bot.utils.timeframes import timeframe_minutes, validate_interval

logger = logging.getLogger("trend_bot")

STATUS_EVERY_S = 60.0


def _load(config_path: Path | None, interval: str | None) -> Config:
    config = load_config(config_path, ROOT)
    if interval:
        config.interval = validate_interval(interval)
    setup_logging(config.log_level, config.log_dir, config.log_file)
    return config


def log_status(engine: TradingEngine) -> None:
    snap = engine.snapshot
    m = snap.metrics
    price = f"{snap.price:.2f}" if snap.price is not None else "n/a"
    pos = snap.position
    pos_text = (
        f"{pos.side.value} @ {pos.entry_price:.2f} TP={pos.take_profit:.2f} SL={pos.stop_loss:.2f}"
        f"{' (BE)' if pos.trailing_active else ''}"
        if pos else "flat"
    )
    logger.info(
        "Status | %s %s | %s | price %s | %s | balance %.2f | trades %d win %.1f%% PF %.2f",
        snap.symbol, snap.interval, snap.status.value, price, pos_text,
        snap.balance, m.total_trades, m.win_rate, m.profit_factor,
    )


async def _run_async(config: Config, start: bool) -> None:
    log_feed = LogFeed(config.log_feed_size, config.timezone_offset).attach()
    notifier = TelegramNotifier(config.telegram_bot_token, config.telegram_chat_id)
    engine = TradingEngine.from_config(config, log_feed=log_feed, notifier=notifier)
    source = BinanceKlineSource(testnet=config.use_testnet)
    feed = MarketFeed(
        source,
        engine.submit,
        symbol=config.symbol,
        interval=config.interval,
        history_limit=config.history_limit,
        reconnect_delay=config.reconnect_delay,
    )
    engine.attach_feed(feed)
    logger.info("System initialized. Connecting to live feed for %s %s...", config.symbol, config.interval)
    engine_task = asyncio.create_task(engine.run(), name="engine")
    feed.start(engine.epoch)
    if start:
        engine.submit(Start())
    try:
        while True:
            await asyncio.sleep(STATUS_EVERY_S)
            log_status(engine)
    finally:
        await feed.stop()
        engine_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await engine_task
        log_feed.detach()


def run_live(config_path: Path | None, interval: str | None, start: bool) -> int:
    """Run the live feed + strategy engine until Ctrl-C."""
    config = _load(config_path, interval)
    try:
        asyncio.run(_run_async(config, start or config.auto_start))
    except KeyboardInterrupt:
        logger.info("Shutdown by user")
    return 0


def show_history(config_path: Path | None, interval: str | None, rows: int) -> int:
    """Fetch history once and print the latest bars with their SMA values."""
    config = _load(config_path, interval)
    source = BinanceKlineSource(testnet=config.use_testnet)
    try:
        df = source.get_klines(config.symbol, config.interval, limit=config.history_limit)
    except Exception as e:
        logger.error("History fetch failed: %s", e)
        return 1
    store = CandleStore(max_candles=config.max_candles)
    store.bootstrap(candles_from_frame(df))
    periods = (config.sma_fast, config.sma_mid, config.sma_slow)
    indicators = IndicatorEngine(periods)
    indicators.rebuild(store.candles)
    frame = store.to_frame()
    for p in periods:
        values = [pt.value for pt in indicators.series(p)]
        frame[f"sma{p}"] = [float("nan")] * (len(frame) - len(values)) + values
    print(f"\n--- {config.symbol} {config.interval} ({timeframe_minutes(config.interval)} min bars, {len(frame)} loaded) ---")
    print(frame.tail(rows).to_string(index=False))
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="SMA Trend Bot CLI")
    parser.add_argument("mode", choices=["run", "history"], help="Run the live bot or print recent history")
    parser.add_argument("--config", type=Path, default=None, help="Path to config.yaml")
    parser.add_argument("--interval", default=None, help="Override bar interval (e.g. 1m, 5m, 1h)")
    parser.add_argument("--start", action="store_true", help="Activate the strategy immediately")
    parser.add_argument("--rows", type=int, default=10, help="Rows to print for 'history'")
    args = parser.parse_args()
    if args.mode == "history":
        return show_history(args.config, args.interval, args.rows)
    return run_live(args.config, args.interval, args.start)


if __name__ == "__main__":
    exit(main())
