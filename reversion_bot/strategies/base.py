"""Abstract strategy: bar window -> signal, plus sizing and exit levels."""

from __future__ import annotations
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import NamedTuple, Optional, Sequence

from reversion_bot.core.types import PriceBar, SignalType, TradingSignal


class RiskLevels(NamedTuple):
    stop_loss: Decimal
    take_profit: Decimal


class BaseStrategy(ABC):
    """Strategy analyses the trailing bar window; the last bar is the current observation."""

    @property
    @abstractmethod
    def min_bars(self) -> int:
        """Bars needed before analyze() can return a signal."""

    @abstractmethod
    def analyze(self, bars: Sequence[PriceBar]) -> Optional[TradingSignal]:
        """Return a signal for the last bar, or None (insufficient data / no setup)."""

    @abstractmethod
    def calculate_position_size(
        self, signal: TradingSignal, available_balance: Decimal, current_price: Decimal
    ) -> Decimal:
        """Proposed size before risk validation."""

    @abstractmethod
    def calculate_risk_levels(self, entry_price: Decimal, signal_type: SignalType) -> RiskLevels:
        """Stop-loss and take-profit prices for an entry."""
