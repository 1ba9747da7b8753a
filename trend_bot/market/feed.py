"""
Market feed: bootstraps history, then keeps a live kline subscription and
reconnects with a fixed backoff.

State: DISCONNECTED -> LOADING_HISTORY -> LIVE -> (error) DISCONNECTED -> ...
The feed never mutates shared state. Everything it produces is submitted to
the engine as an event tagged with the epoch of the subscription, so data
from an abandoned interval can be recognized and dropped.
"""

from __future__ import annotations
import asyncio
import contextlib
import json
import logging
from typing import Any, AsyncContextManager, AsyncIterator, Callable, Optional

import websockets

from trend_bot.core.events import CandleUpdate, FeedEvent, FeedStatusChanged, HistoryLoaded
from trend_bot.core.types import Candle, FeedStatus
from trend_bot.market.base import KlineSource
from trend_bot.market.candles import candles_from_frame

logger = logging.getLogger("trend_bot.market.feed")

Connector = Callable[[str], AsyncContextManager[AsyncIterator[Any]]]


def default_connect(url: str) -> AsyncContextManager[AsyncIterator[Any]]:
    """Open the websocket; handshake and keepalive timeouts come from the transport."""
    return websockets.connect(
        url,
        open_timeout=10,
        ping_interval=20,
        ping_timeout=20,
        close_timeout=5,
    )


def parse_kline_message(raw: Any) -> Optional[tuple[Candle, bool]]:
    """
    Decode one stream message into (candle, bar_closed).
    Returns None for non-kline events; raises ValueError on malformed payloads.
    """
    try:
        message = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Undecodable stream message: {e}") from e
    if not isinstance(message, dict):
        raise ValueError(f"Unexpected stream payload type: {type(message).__name__}")
    # Combined streams wrap the event: {"stream": ..., "data": {...}}
    if "data" in message and isinstance(message["data"], dict):
        message = message["data"]
    if message.get("e") != "kline":
        return None
    k = message.get("k")
    try:
        candle = Candle(
            time=int(k["t"]) // 1000,
            open=float(k["o"]),
            high=float(k["h"]),
            low=float(k["l"]),
            close=float(k["c"]),
        )
        closed = bool(k.get("x", False))
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"Malformed kline payload: {e}") from e
    return candle, closed


class MarketFeed:
    """Owns the upstream connection lifecycle for one symbol."""

    def __init__(
        self,
        source: KlineSource,
        sink: Callable[[FeedEvent], None],
        symbol: str,
        interval: str,
        history_limit: int = 1000,
        reconnect_delay: float = 3.0,
        connect: Optional[Connector] = None,
    ):
        self.source = source
        self.symbol = symbol
        self.interval = interval
        self.history_limit = history_limit
        self.reconnect_delay = reconnect_delay
        self.status = FeedStatus.DISCONNECTED
        self.epoch = 0
        self._sink = sink
        self._connect = connect or default_connect
        self._task: Optional[asyncio.Task] = None
        self._live_epoch: Optional[int] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, epoch: int = 0) -> None:
        self.restart(self.interval, epoch)

    def restart(self, interval: str, epoch: int) -> None:
        """Cancel the current subscription and bootstrap+subscribe for interval. Must run on the loop."""
        self._cancel()
        self.interval = interval
        self.epoch = epoch
        self.status = FeedStatus.DISCONNECTED
        self._task = asyncio.get_running_loop().create_task(
            self._run(epoch, interval), name=f"feed-{self.symbol}-{interval}-{epoch}"
        )

    async def stop(self) -> None:
        task = self._task
        self._cancel()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._set_status(self.epoch, FeedStatus.DISCONNECTED)

    def _cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def _emit(self, epoch: int, event: FeedEvent) -> None:
        if epoch != self.epoch:
            return
        self._sink(event)

    def _set_status(self, epoch: int, status: FeedStatus) -> None:
        if epoch != self.epoch or status == self.status:
            return
        self.status = status
        self._emit(epoch, FeedStatusChanged(epoch=epoch, status=status))

    async def _run(self, epoch: int, interval: str) -> None:
        history_loaded = False
        while True:
            # Bootstrap only before any live bar has been applied for this epoch.
            if not history_loaded and self._live_epoch != epoch:
                self._set_status(epoch, FeedStatus.LOADING_HISTORY)
                history_loaded = await self._load_history(epoch, interval)
            try:
                await self._subscribe(epoch, interval)
                logger.warning("Live stream closed for %s %s", self.symbol, interval)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning("Live stream error for %s %s: %s: %s", self.symbol, interval, type(e).__name__, e)
            self._set_status(epoch, FeedStatus.DISCONNECTED)
            logger.info("Reconnecting in %.1fs", self.reconnect_delay)
            await asyncio.sleep(self.reconnect_delay)

    async def _load_history(self, epoch: int, interval: str) -> bool:
        try:
            df = await asyncio.to_thread(self.source.get_klines, self.symbol, interval, self.history_limit)
            candles = candles_from_frame(df)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("History unavailable for %s %s, continuing with live feed only: %s", self.symbol, interval, e)
            return False
        self._emit(epoch, HistoryLoaded(epoch=epoch, candles=tuple(candles)))
        logger.info("Loaded %d historical bars for %s %s", len(candles), self.symbol, interval)
        return True

    async def _subscribe(self, epoch: int, interval: str) -> None:
        url = self.source.stream_url(self.symbol, interval)
        async with self._connect(url) as ws:
            self._set_status(epoch, FeedStatus.LIVE)
            logger.info("Live stream connected: %s", url)
            async for raw in ws:
                parsed = parse_kline_message(raw)
                if parsed is None:
                    continue
                candle, closed = parsed
                self._live_epoch = epoch
                self._emit(epoch, CandleUpdate(epoch=epoch, candle=candle, closed=closed))
