"""Core: config, types, errors, logging."""

from reversion_bot.core.config import load_config, Config
from reversion_bot.core.errors import (
    ReversionBotError,
    ConfigError,
    NoHistoricalDataError,
    PositionStateError,
)
from reversion_bot.core.types import (
    PriceBar,
    Indicators,
    SignalType,
    TradingSignal,
    Position,
    PositionSide,
    PositionStatus,
    Trade,
    TradeSide,
    TradeStatus,
)
from reversion_bot.core.logger import setup_logging

__all__ = [
    "load_config",
    "Config",
    "ReversionBotError",
    "ConfigError",
    "NoHistoricalDataError",
    "PositionStateError",
    "PriceBar",
    "Indicators",
    "SignalType",
    "TradingSignal",
    "Position",
    "PositionSide",
    "PositionStatus",
    "Trade",
    "TradeSide",
    "TradeStatus",
    "setup_logging",
]
