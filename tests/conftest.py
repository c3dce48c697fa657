"""Shared fixtures: bar series and signals."""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from reversion_bot.core.types import Indicators, PriceBar, SignalType, TradingSignal

START = datetime(2024, 1, 1)
STEP = timedelta(minutes=15)


def _bars(closes, volume=1_000_000, start=START, step=STEP):
    bars = []
    for i, c in enumerate(closes):
        c = Decimal(str(c))
        bars.append(PriceBar(
            timestamp=start + i * step,
            open=c,
            high=c,
            low=c,
            close=c,
            volume=Decimal(volume),
        ))
    return bars


def _signal(signal_type=SignalType.BUY, strength=0.8, price=100, timestamp=START):
    zero = Decimal(0)
    return TradingSignal(
        type=signal_type,
        strength=strength,
        price=Decimal(str(price)),
        timestamp=timestamp,
        indicators=Indicators(sma=zero, std_dev=zero, upper_band=zero, lower_band=zero, z_score=zero),
    )


@pytest.fixture
def make_bars():
    return _bars


@pytest.fixture
def make_signal():
    return _signal
