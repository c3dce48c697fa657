"""
Price providers: read-only, pull-based sources of ordered PriceBars.
"""

from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Iterable, List, Optional, Union

import pandas as pd

from reversion_bot.core.types import PriceBar
from reversion_bot.utils.precision import to_decimal

logger = logging.getLogger("reversion_bot.data")

REQUIRED_COLUMNS = ("timestamp", "open", "high", "low", "close")
# Volume used when a data source carries none
DEFAULT_VOLUME = Decimal(1_000_000)


def naive_utc(moment: datetime) -> datetime:
    """Timestamps are compared naive; zone-aware values are converted to UTC first."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def utc_now() -> datetime:
    """Wall clock on the same naive-UTC scale as bar timestamps."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class PriceProvider(ABC):
    """Ascending-timestamp bar history plus the latest price."""

    @abstractmethod
    def get_price_history(self) -> List[PriceBar]:
        pass

    def get_current_price(self) -> Decimal:
        """Close of the most recent bar."""
        history = self.get_price_history()
        if not history:
            raise LookupError("no price data available")
        return history[-1].close


class InMemoryPriceProvider(PriceProvider):
    """Wraps an existing bar list (tests, replays)."""

    def __init__(self, bars: Iterable[PriceBar]):
        self._bars = sorted(bars, key=lambda b: b.timestamp)

    def get_price_history(self) -> List[PriceBar]:
        return list(self._bars)

    def append(self, bar: PriceBar) -> None:
        if self._bars and bar.timestamp < self._bars[-1].timestamp:
            raise ValueError("bars must be appended in timestamp order")
        self._bars.append(bar)


def bars_from_frame(df: pd.DataFrame, source: str = "") -> List[PriceBar]:
    """
    Convert an OHLCV DataFrame to bars. Numbers go through their string form
    so CSV text like '101.25' stays exact.
    """
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"price data missing columns: {missing}")
    df = df.sort_values("timestamp", kind="stable")
    has_volume = "volume" in df.columns
    bars = []
    for row in df.itertuples(index=False):
        ts = naive_utc(pd.Timestamp(row.timestamp).to_pydatetime())
        bars.append(PriceBar(
            timestamp=ts,
            open=to_decimal(row.open),
            high=to_decimal(row.high),
            low=to_decimal(row.low),
            close=to_decimal(row.close),
            volume=to_decimal(row.volume) if has_volume and not pd.isna(row.volume) else DEFAULT_VOLUME,
            source=source,
        ))
    return bars


class CsvPriceProvider(PriceProvider):
    """
    Bars from a CSV with columns timestamp, open, high, low, close[, volume].
    Timestamps may be epoch milliseconds or ISO strings; zoned ISO
    timestamps are converted to naive UTC.
    """

    def __init__(self, path: Union[str, Path], source: Optional[str] = None):
        self.path = Path(path)
        self.source = source or f"csv:{self.path.name}"
        self._bars: Optional[List[PriceBar]] = None

    def _load(self) -> List[PriceBar]:
        df = pd.read_csv(self.path, dtype=str)
        ts = df["timestamp"] if "timestamp" in df.columns else None
        if ts is not None:
            if ts.str.fullmatch(r"\d+").all():
                df["timestamp"] = pd.to_datetime(ts.astype("int64"), unit="ms")
            else:
                df["timestamp"] = pd.to_datetime(ts, utc=True).dt.tz_convert(None)
        bars = bars_from_frame(df, self.source)
        logger.info("Loaded %d bars from %s", len(bars), self.path)
        return bars

    def get_price_history(self) -> List[PriceBar]:
        if self._bars is None:
            self._bars = self._load()
        return list(self._bars)
