"""Abstract upstream price source: historical klines and the live stream address."""

from __future__ import annotations
from abc import ABC, abstractmethod

import pandas as pd


class KlineSource(ABC):
    """Historical bars fetch keyed by (symbol, interval, limit) plus the live subscription URL."""

    @abstractmethod
    def get_klines(self, symbol: str, interval: str, limit: int = 1000) -> pd.DataFrame:
        """Return ordered OHLC DataFrame with columns: time, open, high, low, close, volume."""
        pass

    @abstractmethod
    def stream_url(self, symbol: str, interval: str) -> str:
        """Websocket URL emitting kline update events for (symbol, interval)."""
        pass
