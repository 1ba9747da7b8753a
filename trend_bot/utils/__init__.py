"""Utils: Telegram, timeframes."""

from trend_bot.utils.telegram import send_telegram, TelegramNotifier
from trend_bot.utils.timeframes import timeframe_minutes, validate_interval, SUPPORTED_INTERVALS

__all__ = ["send_telegram", "TelegramNotifier", "timeframe_minutes", "validate_interval", "SUPPORTED_INTERVALS"]
