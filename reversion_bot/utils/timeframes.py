"""Timeframe strings ('15m', '1h', '1d') to live-cycle intervals."""

MAX_CYCLE_SECONDS = 60 * 60


def timeframe_minutes(tf: str) -> int:
    """Convert timeframe (e.g. '5m', '1h', '1d') to minutes."""
    tf = tf.strip().lower()
    if tf.endswith("m"):
        return int(tf[:-1])
    if tf.endswith("h"):
        return int(tf[:-1]) * 60
    if tf.endswith("d"):
        return int(tf[:-1]) * 60 * 24
    raise ValueError(f"Unsupported timeframe: {tf}")


def cycle_interval_seconds(tf: str) -> int:
    """Seconds between live cycles; capped at one hour to stay responsive."""
    return min(timeframe_minutes(tf) * 60, MAX_CYCLE_SECONDS)
