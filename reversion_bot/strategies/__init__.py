"""Strategies: base interface and the mean-reversion signal engine."""

from reversion_bot.strategies.base import BaseStrategy, RiskLevels
from reversion_bot.strategies.mean_reversion import (
    SignalEngine,
    SignalDeduplicator,
    ScoreAdjustment,
    CONFIRMATIONS,
    apply_confirmations,
)

__all__ = [
    "BaseStrategy",
    "RiskLevels",
    "SignalEngine",
    "SignalDeduplicator",
    "ScoreAdjustment",
    "CONFIRMATIONS",
    "apply_confirmations",
]
