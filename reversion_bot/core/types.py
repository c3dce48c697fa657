"""
Core data types: price bars, indicators, signals, positions, and trades.
All money, price, and size fields are Decimal.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from reversion_bot.core.errors import PositionStateError

ZERO = Decimal(0)
HUNDRED = Decimal(100)


class SignalType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class PositionSide(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"


class PositionStatus(str, Enum):
    PENDING = "PENDING"
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class TradeSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class TradeStatus(str, Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


@dataclass(frozen=True)
class PriceBar:
    """OHLCV candle."""
    timestamp: datetime
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal
    source: str = ""


@dataclass(frozen=True)
class Indicators:
    """Indicator snapshot for one trailing window. rsi/ema are None when the window is too short."""
    sma: Decimal
    std_dev: Decimal
    upper_band: Decimal
    lower_band: Decimal
    z_score: Decimal
    rsi: Optional[float] = None
    ema: Optional[Decimal] = None


@dataclass(frozen=True)
class TradingSignal:
    """Mean-reversion signal with strength in [0, 1]."""
    type: SignalType
    strength: float
    price: Decimal
    timestamp: datetime
    indicators: Indicators
    reason: str = ""


@dataclass
class Position:
    """
    Position state. Mutated by mark() while OPEN; close() fixes pnl at the
    exit price and the position is history from then on.
    """
    id: str
    entry_price: Decimal
    entry_time: datetime
    size: Decimal
    side: PositionSide = PositionSide.LONG
    stop_loss: Optional[Decimal] = None
    take_profit: Optional[Decimal] = None
    current_price: Optional[Decimal] = None
    pnl: Optional[Decimal] = None
    pnl_percent: Optional[Decimal] = None
    status: PositionStatus = PositionStatus.OPEN
    exit_time: Optional[datetime] = None
    exit_reason: Optional[str] = None

    @property
    def entry_value(self) -> Decimal:
        return self.entry_price * self.size

    @property
    def market_value(self) -> Decimal:
        """Size valued at the last known price (entry price if never marked)."""
        price = self.current_price if self.current_price is not None else self.entry_price
        return self.size * price

    def _set_price(self, price: Decimal) -> None:
        self.current_price = price
        if self.side == PositionSide.LONG:
            self.pnl = (price - self.entry_price) * self.size
        else:
            self.pnl = (self.entry_price - price) * self.size
        entry_value = self.entry_value
        self.pnl_percent = self.pnl / entry_value * HUNDRED if entry_value else ZERO

    def mark(self, price: Decimal) -> None:
        """Refresh current price and unrealized pnl."""
        if self.status == PositionStatus.CLOSED:
            raise PositionStateError(f"position {self.id} is closed")
        self._set_price(price)

    def close(self, price: Decimal, when: datetime, reason: str = "") -> None:
        """Transition to CLOSED exactly once, fixing pnl at the exit price."""
        if self.status == PositionStatus.CLOSED:
            raise PositionStateError(f"position {self.id} already closed")
        self._set_price(price)
        self.status = PositionStatus.CLOSED
        self.exit_time = when
        self.exit_reason = reason or None


@dataclass(frozen=True)
class Trade:
    """Trade log entry. Never mutated after creation."""
    id: str
    timestamp: datetime
    side: TradeSide
    price: Decimal
    size: Decimal
    fee: Decimal
    status: TradeStatus
    error: Optional[str] = None

    @property
    def notional(self) -> Decimal:
        return self.price * self.size

    @property
    def ok(self) -> bool:
        return self.status == TradeStatus.SUCCESS
