"""Unit tests for utils.timeframes."""

import pytest
from reversion_bot.utils.timeframes import timeframe_minutes, cycle_interval_seconds


def test_timeframe_minutes():
    assert timeframe_minutes("5m") == 5
    assert timeframe_minutes("1h") == 60
    assert timeframe_minutes("1d") == 1440


def test_timeframe_invalid():
    with pytest.raises(ValueError):
        timeframe_minutes("1x")


def test_cycle_interval_capped_at_one_hour():
    assert cycle_interval_seconds("15m") == 900
    assert cycle_interval_seconds("1h") == 3600
    assert cycle_interval_seconds("4h") == 3600
    assert cycle_interval_seconds("1d") == 3600
