"""Indicators: SMA, population std-dev, Bollinger bands, RSI, EMA."""

from reversion_bot.indicators.calculator import IndicatorCalculator, RSI_PERIOD, EMA_PERIOD

__all__ = ["IndicatorCalculator", "RSI_PERIOD", "EMA_PERIOD"]
