"""Abstract execution sink: how an approved trade reaches a market."""

from __future__ import annotations
from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Optional

from reversion_bot.core.types import Indicators, SignalType, TradeSide, TradingSignal, Trade


def trade_side(signal: TradingSignal) -> TradeSide:
    """BUY/SELL side for an actionable signal."""
    if signal.type == SignalType.HOLD:
        raise ValueError("HOLD signals are not executable")
    return TradeSide(signal.type.value)


def exit_signal(price: Decimal, timestamp: datetime, reason: str) -> TradingSignal:
    """Synthetic full-strength SELL used to exit a position."""
    zero = Decimal(0)
    return TradingSignal(
        type=SignalType.SELL,
        strength=1.0,
        price=price,
        timestamp=timestamp,
        indicators=Indicators(sma=zero, std_dev=zero, upper_band=zero, lower_band=zero, z_score=zero),
        reason=reason,
    )


class ExecutionSink(ABC):
    """
    Executes a sized signal. Returns a Trade (SUCCESS or FAILED) or None when
    nothing was attempted. Failures are never raised to the caller.
    """

    def fill_price(self, side: TradeSide, price: Decimal) -> Decimal:
        """Expected fill for a quoted price; used for affordability checks."""
        return price

    @abstractmethod
    def execute_trade(self, signal: TradingSignal, size: Decimal) -> Optional[Trade]:
        """Submit signal for `size` units."""
        pass
