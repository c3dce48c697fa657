"""Data: price providers."""

from reversion_bot.data.provider import (
    PriceProvider,
    InMemoryPriceProvider,
    CsvPriceProvider,
    bars_from_frame,
    naive_utc,
    utc_now,
)

__all__ = [
    "PriceProvider",
    "InMemoryPriceProvider",
    "CsvPriceProvider",
    "bars_from_frame",
    "naive_utc",
    "utc_now",
]
