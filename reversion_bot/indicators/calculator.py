"""
Indicator calculator: pure function of a trailing window of closes.

SMA, std-dev and bands are exact Decimal arithmetic over the last ma_period
closes. Std-dev is the population form (divide by N), giving tighter bands
than the sample form. RSI and EMA are confirmation oscillators computed with
pandas and are None when the window is too short.
"""

from __future__ import annotations
import logging
from decimal import Decimal
from typing import Optional, Sequence

import pandas as pd

from reversion_bot.core.types import Indicators

logger = logging.getLogger("reversion_bot.indicators")

RSI_PERIOD = 14
EMA_PERIOD = 20


def _sma_seeded(values: pd.Series, period: int) -> pd.Series:
    """
    Replace the first `period` values by their mean, so that a recursive
    ewm(adjust=False) starts from an SMA seed (classic EMA / Wilder seeding).
    """
    seed = pd.Series([values.iloc[:period].mean()])
    return pd.concat([seed, values.iloc[period:]], ignore_index=True)


def rsi(closes: pd.Series, period: int = RSI_PERIOD) -> Optional[float]:
    """Wilder RSI of the last close. Needs period + 1 closes (period price changes)."""
    delta = closes.diff().dropna()
    if len(delta) < period:
        return None
    gains = delta.clip(lower=0)
    losses = (-delta).clip(lower=0)
    avg_gain = _sma_seeded(gains, period).ewm(alpha=1.0 / period, adjust=False).mean().iloc[-1]
    avg_loss = _sma_seeded(losses, period).ewm(alpha=1.0 / period, adjust=False).mean().iloc[-1]
    if avg_loss == 0:
        return 100.0 if avg_gain > 0 else 50.0
    rs = avg_gain / avg_loss
    return float(100.0 - 100.0 / (1.0 + rs))


def ema(closes: pd.Series, period: int = EMA_PERIOD) -> Optional[Decimal]:
    """SMA-seeded EMA of the last close."""
    if len(closes) < period:
        return None
    value = _sma_seeded(closes, period).ewm(span=period, adjust=False).mean().iloc[-1]
    return Decimal(str(value))


class IndicatorCalculator:
    """Computes an Indicators snapshot from a trailing window of closes."""

    def __init__(self, ma_period: int = 20, std_dev_multiplier: Decimal = Decimal(2)):
        if ma_period < 2:
            raise ValueError("ma_period must be at least 2")
        self.ma_period = ma_period
        self.std_dev_multiplier = Decimal(std_dev_multiplier)

    def sma(self, closes: Sequence[Decimal]) -> Optional[Decimal]:
        if len(closes) < self.ma_period:
            return None
        window = closes[-self.ma_period:]
        return sum(window, Decimal(0)) / len(window)

    def std_dev(self, closes: Sequence[Decimal]) -> Optional[Decimal]:
        """Population standard deviation of the trailing window."""
        mean = self.sma(closes)
        if mean is None:
            return None
        window = closes[-self.ma_period:]
        variance = sum(((c - mean) ** 2 for c in window), Decimal(0)) / len(window)
        return variance.sqrt()

    def calculate(self, closes: Sequence[Decimal]) -> Optional[Indicators]:
        """
        Indicators for the last close, or None when fewer than ma_period closes.
        z_score is 0 for a zero-variance window.
        """
        if len(closes) < self.ma_period:
            logger.debug("Insufficient data: need %d closes, have %d", self.ma_period, len(closes))
            return None
        closes = list(closes)
        sma = self.sma(closes)
        std = self.std_dev(closes)
        band = std * self.std_dev_multiplier
        z_score = (closes[-1] - sma) / std if std > 0 else Decimal(0)

        series = pd.Series([float(c) for c in closes])
        return Indicators(
            sma=sma,
            std_dev=std,
            upper_band=sma + band,
            lower_band=sma - band,
            z_score=z_score,
            rsi=rsi(series) if len(closes) >= RSI_PERIOD else None,
            ema=ema(series) if len(closes) >= EMA_PERIOD else None,
        )
