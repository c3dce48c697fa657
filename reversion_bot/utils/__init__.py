"""Utils: decimal precision, timeframes, Telegram."""

from reversion_bot.utils.precision import to_decimal, round_quantity, bps
from reversion_bot.utils.telegram import send_telegram
from reversion_bot.utils.timeframes import timeframe_minutes, cycle_interval_seconds

__all__ = [
    "to_decimal",
    "round_quantity",
    "bps",
    "send_telegram",
    "timeframe_minutes",
    "cycle_interval_seconds",
]
