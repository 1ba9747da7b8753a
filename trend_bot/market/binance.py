"""
Binance USDT-M Futures public market data with retry and rate-limit handling.
"""

from __future__ import annotations
import logging
import time
from typing import Optional

import pandas as pd

from binance.client import Client
from binance.exceptions import BinanceAPIException

from trend_bot.market.base import KlineSource

logger = logging.getLogger("trend_bot.market.binance")

STREAM_URL = "wss://fstream.binance.com/ws"
TESTNET_STREAM_URL = "wss://stream.binancefuture.com/ws"

KLINE_COLUMNS = [
    "open_time", "open", "high", "low", "close", "volume",
    "close_time", "quote_av", "num_trades", "tb_base_av", "tb_quote_av", "ignore",
]


def retry_on_rate_limit(max_retries: int = 3, base_delay: float = 1.0):
    """Decorator: retry on 429 or 418 (rate limit)."""
    def decorator(f):
        def wrapped(*args, **kwargs):
            last_exc = None
            for attempt in range(max_retries):
                try:
                    return f(*args, **kwargs)
                except BinanceAPIException as e:
                    last_exc = e
                    if e.status_code in (429, 418) and attempt < max_retries - 1:
                        delay = base_delay * (2 ** attempt)
                        logger.warning("Rate limited, retry in %.1fs (attempt %d)", delay, attempt + 1)
                        time.sleep(delay)
                    else:
                        raise
            raise last_exc
        return wrapped
    return decorator


def klines_to_frame(raw: list) -> pd.DataFrame:
    """Raw Binance kline rows -> DataFrame with time (UTC datetime) and float OHLCV."""
    df = pd.DataFrame(raw, columns=KLINE_COLUMNS)
    df[["open", "high", "low", "close", "volume"]] = df[["open", "high", "low", "close", "volume"]].astype(float)
    df["time"] = pd.to_datetime(df["open_time"], unit="ms", utc=True)
    return df[["time", "open", "high", "low", "close", "volume"]]


class BinanceKlineSource(KlineSource):
    """Binance Futures klines (testnet and live). No API keys needed for market data."""

    def __init__(self, testnet: bool = False):
        self.testnet = testnet
        self._client: Optional[Client] = None

    @property
    def client(self) -> Client:
        # Created lazily: the constructor pings the exchange.
        if self._client is None:
            self._client = Client(testnet=self.testnet)
            logger.info("Binance Futures market data: using %s", "TESTNET" if self.testnet else "LIVE")
        return self._client

    @retry_on_rate_limit(max_retries=3, base_delay=1.0)
    def get_klines(self, symbol: str, interval: str, limit: int = 1000) -> pd.DataFrame:
        raw = self.client.futures_klines(symbol=symbol, interval=interval, limit=limit)
        return klines_to_frame(raw)

    def stream_url(self, symbol: str, interval: str) -> str:
        base = TESTNET_STREAM_URL if self.testnet else STREAM_URL
        return f"{base}/{symbol.lower()}@kline_{interval}"
