"""Timeframe string to minutes conversion and the supported interval set."""

SUPPORTED_INTERVALS = ("1m", "3m", "5m", "15m", "30m", "1h", "2h", "4h", "1d")


def timeframe_minutes(tf: str) -> int:
    """Convert Binance-style timeframe (e.g. '5m', '1h', '1d') to minutes."""
    tf = tf.strip().lower()
    if tf.endswith("m"):
        return int(tf[:-1])
    if tf.endswith("h"):
        return int(tf[:-1]) * 60
    if tf.endswith("d"):
        return int(tf[:-1]) * 60 * 24
    raise ValueError(f"Unsupported timeframe: {tf}")


def validate_interval(interval: str) -> str:
    """Return the normalized interval or raise ValueError if it is not supported."""
    tf = interval.strip().lower()
    if tf not in SUPPORTED_INTERVALS:
        raise ValueError(f"Unsupported interval: {interval} (expected one of {', '.join(SUPPORTED_INTERVALS)})")
    return tf
