"""
Single-writer trading engine.

Feed events and user commands are submitted to one queue and applied by one
consumer, in order. Per price update the pipeline is:
candle merge -> SMA update -> strategy (when active) -> TP/SL -> trailing.
After every event a frozen, versioned EngineSnapshot is published by
reference swap, so readers never see a half-applied update.
"""

from __future__ import annotations
import asyncio
import dataclasses
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Optional

from trend_bot.analytics.metrics import TradeMetrics, compute_metrics
from trend_bot.core.config import Config, TradingSettings, check_trading_values
from trend_bot.core.events import (
    CandleUpdate,
    Event,
    FeedStatusChanged,
    HistoryLoaded,
    ManualClose,
    ResetSimulation,
    SetMarketType,
    SetMode,
    Start,
    Stop,
    SwitchInterval,
    UpdateSettings,
)
from trend_bot.core.logger import LogFeed
from trend_bot.core.types import (
    Candle,
    ClosedTrade,
    EntrySignal,
    ExitSignal,
    FeedStatus,
    IndicatorPoint,
    LogEntry,
    Position,
)
from trend_bot.market.candles import CandleStore
from trend_bot.market.indicators import IndicatorEngine
from trend_bot.risk.manager import PositionManager
from trend_bot.strategies import BaseStrategy, MarketContext, build_strategy
from trend_bot.utils.telegram import TelegramNotifier
from trend_bot.utils.timeframes import validate_interval

if TYPE_CHECKING:
    from trend_bot.market.feed import MarketFeed

logger = logging.getLogger("trend_bot.engine")

SUCCESS = {"severity": "success"}
UPDATABLE_SETTINGS = ("margin_amount", "leverage", "take_profit_pct", "stop_loss_pct", "trailing_stop", "signal_exit")


@dataclass(frozen=True)
class EngineSnapshot:
    """Read-only state published for display consumers."""
    version: int
    symbol: str
    interval: str
    status: FeedStatus
    settings: TradingSettings
    balance: float
    candles: tuple[Candle, ...] = ()
    sma: dict[int, tuple[IndicatorPoint, ...]] = field(default_factory=dict)
    position: Optional[Position] = None
    trades: tuple[ClosedTrade, ...] = ()
    metrics: TradeMetrics = field(default_factory=TradeMetrics)
    logs: tuple[LogEntry, ...] = ()

    @property
    def price(self) -> Optional[float]:
        return self.candles[-1].close if self.candles else None

    @property
    def is_loading(self) -> bool:
        return self.status == FeedStatus.LOADING_HISTORY

    @property
    def connected(self) -> bool:
        return self.status == FeedStatus.LIVE


class TradingEngine:
    """Owns the candle store, indicators, strategy and position manager for one symbol."""

    def __init__(
        self,
        symbol: str,
        interval: str,
        settings: TradingSettings,
        strategy: BaseStrategy,
        positions: PositionManager,
        store: Optional[CandleStore] = None,
        indicators: Optional[IndicatorEngine] = None,
        log_feed: Optional[LogFeed] = None,
        notifier: Optional[TelegramNotifier] = None,
    ):
        self.symbol = symbol
        self.interval = interval
        self.settings = settings
        self.strategy = strategy
        self.positions = positions
        self.store = store or CandleStore()
        self.indicators = indicators or IndicatorEngine(strategy.periods)
        self.log_feed = log_feed
        self.notifier = notifier or TelegramNotifier()
        self.status = FeedStatus.DISCONNECTED
        self.epoch = 0
        self.feed: Optional["MarketFeed"] = None
        self._queue: asyncio.Queue = asyncio.Queue()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._version = 0
        self._last_bar: Optional[Candle] = None
        self._handlers: dict[type, Callable] = {
            HistoryLoaded: self._on_history,
            CandleUpdate: self._on_candle,
            FeedStatusChanged: self._on_status,
            Start: self._on_start,
            Stop: self._on_stop,
            SetMode: self._on_set_mode,
            SetMarketType: self._on_set_market_type,
            UpdateSettings: self._on_update_settings,
            SwitchInterval: self._on_switch_interval,
            ManualClose: self._on_manual_close,
            ResetSimulation: self._on_reset,
        }
        self._snapshot = self._build_snapshot()

    @classmethod
    def from_config(
        cls,
        config: Config,
        log_feed: Optional[LogFeed] = None,
        notifier: Optional[TelegramNotifier] = None,
    ) -> "TradingEngine":
        settings = TradingSettings.from_config(config)
        strategy = build_strategy(config)
        return cls(
            symbol=config.symbol,
            interval=config.interval,
            settings=settings,
            strategy=strategy,
            positions=PositionManager(settings, initial_balance=config.initial_balance, max_trades=config.max_trades),
            store=CandleStore(max_candles=config.max_candles),
            indicators=IndicatorEngine(strategy.periods),
            log_feed=log_feed,
            notifier=notifier,
        )

    # ------------------------------------------------------------------ intake

    @property
    def snapshot(self) -> EngineSnapshot:
        return self._snapshot

    def attach_feed(self, feed: "MarketFeed") -> None:
        self.feed = feed

    def submit(self, event: Event) -> None:
        """Queue an event for the writer. Safe to call from other threads once run() has started."""
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if self._loop is not None and running is not self._loop:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, event)
        else:
            self._queue.put_nowait(event)

    async def run(self) -> None:
        """Consume events until cancelled. A failing handler is logged and skipped."""
        self._loop = asyncio.get_running_loop()
        while True:
            event = await self._queue.get()
            try:
                self.handle(event)
            except Exception as e:
                logger.exception("Engine error on %s: %s", type(event).__name__, e)
            finally:
                self._queue.task_done()

    async def drain(self) -> None:
        """Wait until every submitted event has been applied."""
        await self._queue.join()

    def handle(self, event: Event) -> None:
        """Apply one event and publish the new snapshot. Only the writer calls this."""
        handler = self._handlers.get(type(event))
        if handler is None:
            logger.warning("Ignoring unknown event %r", event)
            return
        handler(event)
        self._publish()

    # ------------------------------------------------------------- feed events

    def _stale(self, epoch: int) -> bool:
        if epoch != self.epoch:
            logger.debug("Dropping event from stale epoch %d (current %d)", epoch, self.epoch)
            return True
        return False

    def _on_history(self, event: HistoryLoaded) -> None:
        if self._stale(event.epoch):
            return
        count = self.store.bootstrap(event.candles)
        self.indicators.rebuild(self.store.candles)
        logger.info("History loaded: %d bars %s %s", count, self.symbol, self.interval)
        self._evaluate()

    def _on_candle(self, event: CandleUpdate) -> None:
        if self._stale(event.epoch):
            return
        result = self.store.merge(event.candle)
        if not result.changed:
            return
        self.indicators.apply(self.store.candles, result)
        if event.closed:
            logger.debug("Bar sealed: %s %s time=%d close=%.2f", self.symbol, self.interval, event.candle.time, event.candle.close)
        self._evaluate()

    def _on_status(self, event: FeedStatusChanged) -> None:
        if self._stale(event.epoch) or event.status == self.status:
            return
        self.status = event.status
        if event.status == FeedStatus.LIVE:
            logger.info("Live feed connected (%s %s)", self.symbol, self.interval, extra=SUCCESS)
        elif event.status == FeedStatus.DISCONNECTED:
            logger.warning("Live feed disconnected, reconnecting...")
        else:
            logger.info("Loading history for %s %s", self.symbol, self.interval)

    # ---------------------------------------------------------------- pipeline

    def _evaluate(self) -> None:
        last = self.store.last
        if last is None:
            return
        if self.settings.active:
            self._run_strategy(last.close, last.time)
        trade = self.positions.on_tick(last.close, last.time)
        if trade is not None:
            self._notify_close(trade)

    def _run_strategy(self, price: float, bar_time: int) -> None:
        fast, mid, slow = (self.indicators.series(p) for p in self.strategy.periods)
        ctx = MarketContext(
            price=price,
            bar_time=bar_time,
            fast=fast,
            mid=mid,
            slow=slow,
            last_close_time=self.positions.last_close_time,
            allow_short=self.settings.shorts_allowed,
            signal_exit=self.settings.signal_exit,
        )
        signal = self.strategy.evaluate(ctx, self.positions.position)
        if isinstance(signal, ExitSignal):
            trade = self.positions.close(signal.price, signal.reason, bar_time)
            if trade is not None:
                self._notify_close(trade)
        elif isinstance(signal, EntrySignal):
            result = self.positions.open(signal.side, signal.price, signal.reason, bar_time)
            if result.allowed and result.position is not None:
                pos = result.position
                self.notifier.notify(
                    f"{self.symbol} {pos.side.value} opened @ {pos.entry_price:.2f} x{pos.leverage} "
                    f"TP={pos.take_profit:.2f} SL={pos.stop_loss:.2f} | {pos.trigger_reason}"
                )

    def _notify_close(self, trade: ClosedTrade) -> None:
        self.notifier.notify(
            f"{self.symbol} {trade.side.value} closed @ {trade.exit_price:.2f} ({trade.close_reason}) "
            f"PnL {trade.pnl:+.2f} ({trade.pnl_percent:.2f}%) | balance {self.positions.balance:.2f}"
        )

    # ---------------------------------------------------------------- commands

    def _context_label(self) -> str:
        s = self.settings
        return "Simulation" if s.simulated else f"{s.mode.value} ({s.market_type.value})"

    def _on_start(self, event: Start) -> None:
        if self.settings.active:
            return
        self.settings.active = True
        logger.info("Bot STARTED on %s", self._context_label(), extra=SUCCESS)
        self.notifier.notify(f"Bot started | {self.symbol} {self.interval} | {self._context_label()}")
        self._evaluate()

    def _on_stop(self, event: Stop) -> None:
        if not self.settings.active:
            return
        self.settings.active = False
        logger.warning("Bot STOPPED")
        self.notifier.notify(f"Bot stopped | {self.symbol}")

    def _on_set_mode(self, event: SetMode) -> None:
        self.settings.mode = event.mode
        self.settings.active = False
        logger.info("Switched to %s mode", event.mode.value)

    def _on_set_market_type(self, event: SetMarketType) -> None:
        self.settings.market_type = event.market_type
        logger.info("Market set to %s", event.market_type.value)

    def _on_update_settings(self, event: UpdateSettings) -> None:
        unknown = set(event.changes) - set(UPDATABLE_SETTINGS)
        if unknown:
            logger.error("Rejected settings update: unknown fields %s", ", ".join(sorted(unknown)))
            return
        toggles = [k for k in ("trailing_stop", "signal_exit") if k in event.changes]
        for name in toggles:
            if not isinstance(event.changes[name], bool):
                logger.error("Rejected settings update: %s must be true or false, got %r", name, event.changes[name])
                return
        try:
            candidate = dataclasses.replace(self.settings, **event.changes)
            check_trading_values(
                candidate.margin_amount, candidate.leverage, candidate.take_profit_pct, candidate.stop_loss_pct
            )
        except (TypeError, ValueError) as e:
            logger.error("Rejected settings update: %s", e)
            return
        # Mutate in place: the position manager holds the same settings object.
        for name, value in event.changes.items():
            setattr(self.settings, name, value)
        logger.info("Settings updated: %s", ", ".join(f"{k}={v}" for k, v in event.changes.items()))

    def _on_switch_interval(self, event: SwitchInterval) -> None:
        try:
            interval = validate_interval(event.interval)
        except ValueError as e:
            logger.error("Rejected interval switch: %s", e)
            return
        if interval == self.interval:
            return
        self.interval = interval
        self.epoch += 1
        # Last known price stays usable for manual close until the new history arrives.
        self._last_bar = self.store.last or self._last_bar
        self.store.clear()
        self.indicators.clear()
        self.status = FeedStatus.DISCONNECTED
        logger.info("Interval switched to %s", interval)
        if self.feed is not None:
            self.feed.restart(interval, self.epoch)

    def _on_manual_close(self, event: ManualClose) -> None:
        if self.positions.position is None:
            logger.warning("Manual close ignored: no open position")
            return
        last = self.store.last or self._last_bar
        if last is None:
            logger.warning("Manual close ignored: no price available yet")
            return
        trade = self.positions.manual_close(last.close, last.time)
        if trade is not None:
            self._notify_close(trade)

    def _on_reset(self, event: ResetSimulation) -> None:
        self.positions.reset()

    # ----------------------------------------------------------------- publish

    def _build_snapshot(self) -> EngineSnapshot:
        pos = self.positions.position
        trades = tuple(self.positions.trades)
        return EngineSnapshot(
            version=self._version,
            symbol=self.symbol,
            interval=self.interval,
            status=self.status,
            settings=dataclasses.replace(self.settings),
            balance=self.positions.balance,
            candles=self.store.candles,
            sma=self.indicators.snapshot(),
            position=dataclasses.replace(pos) if pos is not None else None,
            trades=trades,
            metrics=compute_metrics(trades),
            logs=self.log_feed.entries() if self.log_feed is not None else (),
        )

    def _publish(self) -> None:
        self._version += 1
        self._snapshot = self._build_snapshot()
