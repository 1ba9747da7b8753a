"""
Load configuration from config.yaml and .env. Secrets only from env.
"""

from __future__ import annotations
import os
from pathlib import Path
from dataclasses import dataclass
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from trend_bot.core.types import BotMode, MarketType
from trend_bot.utils.timeframes import validate_interval

MAX_LEVERAGE = 125
STRATEGY_VARIANTS = ("alignment", "crossover")


def _env_path(project_root: Optional[Path] = None) -> Path:
    root = project_root or Path(__file__).resolve().parents[2]
    return root / ".env"


def load_dotenv_if_exists(project_root: Optional[Path] = None) -> None:
    """Load .env from project root if present."""
    path = _env_path(project_root)
    if path.exists():
        load_dotenv(path)


def load_config(config_path: Optional[Path] = None, project_root: Optional[Path] = None) -> "Config":
    """Load config.yaml and overlay with env. Returns a validated Config."""
    load_dotenv_if_exists(project_root)
    root = project_root or Path(__file__).resolve().parents[2]
    path = config_path or root / "config.yaml"
    data: dict[str, Any] = {}
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    # Env overrides (for secrets and overrides)
    def env(key: str, default: Any = "") -> str:
        return str(os.getenv(key, default)).strip()

    def env_bool(key: str, default: bool = False) -> bool:
        return os.getenv(key, str(default)).lower() in ("true", "1", "yes")

    def env_int(key: str, default: int = 0) -> int:
        try:
            return int(os.getenv(key, str(default)))
        except ValueError:
            return default

    def env_float(key: str, default: float = 0.0) -> float:
        try:
            return float(os.getenv(key, str(default)))
        except ValueError:
            return default

    market = data.get("market", {})
    strategy = data.get("strategy", {})
    trading = data.get("trading", {})
    telegram = data.get("telegram", {})
    logging_cfg = data.get("logging", {})
    history = data.get("history", {})

    config = Config(
        symbol=env("SYMBOL", market.get("symbol", "BTCUSDT")).upper(),
        interval=env("INTERVAL", market.get("interval", "1m")),
        use_testnet=env_bool("USE_TESTNET", market.get("testnet", False)),
        history_limit=int(market.get("history_limit", 1000)),
        max_candles=int(market.get("max_candles", 1000)),
        reconnect_delay=float(market.get("reconnect_delay", 3.0)),
        # Strategy
        strategy_variant=env("STRATEGY_VARIANT", strategy.get("variant", "alignment")).lower(),
        sma_fast=int(strategy.get("sma_fast", 5)),
        sma_mid=int(strategy.get("sma_mid", 10)),
        sma_slow=int(strategy.get("sma_slow", 20)),
        volatility_min=float(strategy.get("volatility_min", 0.001)),
        signal_exit=env_bool("SIGNAL_EXIT", strategy.get("signal_exit", False)),
        # Trading
        mode=env("MODE", trading.get("mode", BotMode.SIMULATED.value)).upper(),
        market_type=env("MARKET_TYPE", trading.get("market_type", MarketType.SPOT.value)).upper(),
        margin_amount=env_float("MARGIN_AMOUNT", trading.get("margin_amount", 100.0)),
        leverage=env_int("LEVERAGE", trading.get("leverage", 1)),
        take_profit_pct=env_float("TAKE_PROFIT_PCT", trading.get("take_profit_pct", 0.5)),
        stop_loss_pct=env_float("STOP_LOSS_PCT", trading.get("stop_loss_pct", 0.3)),
        trailing_stop=env_bool("TRAILING_STOP", trading.get("trailing_stop", False)),
        initial_balance=float(trading.get("initial_balance", 10000.0)),
        auto_start=bool(trading.get("auto_start", False)),
        # Telegram
        telegram_bot_token=env("TELEGRAM_BOT_TOKEN", telegram.get("bot_token", "")),
        telegram_chat_id=env("TELEGRAM_CHAT_ID", telegram.get("chat_id", "")),
        # Logging
        log_level=logging_cfg.get("level", "INFO"),
        log_dir=Path(logging_cfg.get("log_dir", "logs")),
        log_file=logging_cfg.get("log_file", "trend_bot.log"),
        log_feed_size=int(logging_cfg.get("feed_size", 50)),
        timezone_offset=float(logging_cfg.get("timezone_offset", -3)),
        # History
        max_trades=int(history.get("max_trades", 500)),
    )
    config.validate()
    return config


class Config:
    """Unified configuration. Immutable after load."""

    __slots__ = (
        "symbol", "interval", "use_testnet", "history_limit", "max_candles", "reconnect_delay",
        "strategy_variant", "sma_fast", "sma_mid", "sma_slow", "volatility_min", "signal_exit",
        "mode", "market_type", "margin_amount", "leverage", "take_profit_pct", "stop_loss_pct",
        "trailing_stop", "initial_balance", "auto_start",
        "telegram_bot_token", "telegram_chat_id",
        "log_level", "log_dir", "log_file", "log_feed_size", "timezone_offset",
        "max_trades",
    )

    def __init__(
        self,
        symbol: str = "BTCUSDT",
        interval: str = "1m",
        use_testnet: bool = False,
        history_limit: int = 1000,
        max_candles: int = 1000,
        reconnect_delay: float = 3.0,
        strategy_variant: str = "alignment",
        sma_fast: int = 5,
        sma_mid: int = 10,
        sma_slow: int = 20,
        volatility_min: float = 0.001,
        signal_exit: bool = False,
        mode: str = "SIMULATED",
        market_type: str = "SPOT",
        margin_amount: float = 100.0,
        leverage: int = 1,
        take_profit_pct: float = 0.5,
        stop_loss_pct: float = 0.3,
        trailing_stop: bool = False,
        initial_balance: float = 10000.0,
        auto_start: bool = False,
        telegram_bot_token: str = "",
        telegram_chat_id: str = "",
        log_level: str = "INFO",
        log_dir: Path = None,
        log_file: str = "trend_bot.log",
        log_feed_size: int = 50,
        timezone_offset: float = -3,
        max_trades: int = 500,
    ):
        self.symbol = symbol
        self.interval = interval
        self.use_testnet = use_testnet
        self.history_limit = history_limit
        self.max_candles = max_candles
        self.reconnect_delay = reconnect_delay
        self.strategy_variant = strategy_variant
        self.sma_fast = sma_fast
        self.sma_mid = sma_mid
        self.sma_slow = sma_slow
        self.volatility_min = volatility_min
        self.signal_exit = signal_exit
        self.mode = mode
        self.market_type = market_type
        self.margin_amount = margin_amount
        self.leverage = leverage
        self.take_profit_pct = take_profit_pct
        self.stop_loss_pct = stop_loss_pct
        self.trailing_stop = trailing_stop
        self.initial_balance = initial_balance
        self.auto_start = auto_start
        self.telegram_bot_token = telegram_bot_token
        self.telegram_chat_id = telegram_chat_id
        self.log_level = log_level
        self.log_dir = Path(log_dir) if log_dir else Path("logs")
        self.log_file = log_file
        self.log_feed_size = log_feed_size
        self.timezone_offset = timezone_offset
        self.max_trades = max_trades

    def validate(self) -> None:
        """Raise ValueError on out-of-range values. Normalizes enums and interval in place."""
        self.interval = validate_interval(self.interval)
        try:
            self.mode = BotMode(self.mode).value
        except ValueError:
            raise ValueError(f"Unknown mode: {self.mode}") from None
        try:
            self.market_type = MarketType(self.market_type).value
        except ValueError:
            raise ValueError(f"Unknown market type: {self.market_type}") from None
        if self.strategy_variant not in STRATEGY_VARIANTS:
            raise ValueError(f"Unknown strategy variant: {self.strategy_variant}")
        if not (0 < self.sma_fast < self.sma_mid < self.sma_slow):
            raise ValueError("SMA periods must satisfy 0 < fast < mid < slow")
        if self.max_candles < self.sma_slow + 1:
            raise ValueError(f"max_candles must exceed the slow SMA period ({self.sma_slow})")
        check_trading_values(self.margin_amount, self.leverage, self.take_profit_pct, self.stop_loss_pct)


def check_trading_values(margin_amount: float, leverage: int, take_profit_pct: float, stop_loss_pct: float) -> None:
    """Shared type and range checks for startup config and runtime setting updates."""
    for name, value in (
        ("margin_amount", margin_amount),
        ("take_profit_pct", take_profit_pct),
        ("stop_loss_pct", stop_loss_pct),
    ):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"{name} must be a number, got {value!r}")
    if isinstance(leverage, bool) or not isinstance(leverage, int):
        raise ValueError(f"leverage must be an integer, got {leverage!r}")
    if margin_amount <= 0:
        raise ValueError(f"margin_amount must be > 0, got {margin_amount}")
    if not 1 <= leverage <= MAX_LEVERAGE:
        raise ValueError(f"leverage must be an integer in [1, {MAX_LEVERAGE}], got {leverage}")
    if take_profit_pct <= 0:
        raise ValueError(f"take_profit_pct must be > 0, got {take_profit_pct}")
    if stop_loss_pct <= 0:
        raise ValueError(f"stop_loss_pct must be > 0, got {stop_loss_pct}")


@dataclass
class TradingSettings:
    """Runtime trading parameters. Owned and mutated by the engine only."""
    mode: BotMode = BotMode.SIMULATED
    market_type: MarketType = MarketType.SPOT
    margin_amount: float = 100.0
    leverage: int = 1
    take_profit_pct: float = 0.5
    stop_loss_pct: float = 0.3
    trailing_stop: bool = False
    signal_exit: bool = False
    active: bool = False

    @classmethod
    def from_config(cls, config: Config) -> "TradingSettings":
        return cls(
            mode=BotMode(config.mode),
            market_type=MarketType(config.market_type),
            margin_amount=config.margin_amount,
            leverage=config.leverage,
            take_profit_pct=config.take_profit_pct,
            stop_loss_pct=config.stop_loss_pct,
            trailing_stop=config.trailing_stop,
            signal_exit=config.signal_exit,
            active=config.auto_start,
        )

    @property
    def simulated(self) -> bool:
        return self.mode == BotMode.SIMULATED

    @property
    def shorts_allowed(self) -> bool:
        """Shorts only in simulation or on futures."""
        return self.simulated or self.market_type == MarketType.FUTURES
