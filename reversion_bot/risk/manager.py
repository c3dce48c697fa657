"""
Risk manager: trade validation, daily loss cap, drawdown tracking, exit rules.
Holds no positions itself; receives them as input. One instance per account.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Iterable, Optional

from reversion_bot.core.types import (
    Position,
    PositionSide,
    PositionStatus,
    TradingSignal,
)

logger = logging.getLogger("reversion_bot.risk")

MAX_EXPOSURE_FRACTION = Decimal("0.5")
RISK_STOP_FRACTION = Decimal("0.05")
MIN_POSITION_VALUE = Decimal(10)
MIN_RISK_STRENGTH = 0.4
MAX_POSITION_AGE = timedelta(hours=24)
EMERGENCY_STOP_PCT = Decimal(-10)
DRAWDOWN_WARN = Decimal("0.05")


@dataclass
class RiskResult:
    """Result of risk check: allowed or rejected, optional adjusted size, reason."""
    allowed: bool
    adjusted_size: Optional[Decimal] = None
    reason: str = ""

    def final_size(self, proposed: Decimal) -> Decimal:
        return self.adjusted_size if self.adjusted_size is not None else proposed


@dataclass
class ExitDecision:
    should_close: bool
    reason: str = ""


@dataclass
class RiskState:
    """Process-duration counters. Reset explicitly, never on a timer."""
    daily_loss: Decimal = Decimal(0)
    daily_loss_reset_at: Optional[datetime] = None
    peak_balance: Decimal = Decimal(0)
    max_drawdown_observed: Decimal = Decimal(0)


def _local_midnight(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


class RiskManager:
    """
    Ordered trade checks (first failure wins): open-position cap, daily loss,
    drawdown, exposure (shrinks size when possible), risk-based size cap,
    dust floor, minimum strength.
    """

    def __init__(
        self,
        max_position_size: Decimal = Decimal(1000),
        max_open_positions: int = 3,
        risk_per_trade: Decimal = Decimal("0.02"),
        max_daily_loss: Decimal = Decimal(100),
        max_drawdown: Decimal = Decimal("0.2"),
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.max_position_size = Decimal(max_position_size)
        self.max_open_positions = max_open_positions
        self.risk_per_trade = Decimal(risk_per_trade)
        self.max_daily_loss = Decimal(max_daily_loss)
        self.max_drawdown = Decimal(max_drawdown)
        self._clock = clock
        self.state = RiskState()

    # -- daily loss ---------------------------------------------------------

    def _roll_day(self, as_of: Optional[datetime]) -> None:
        """Zero the daily counter the first time a call lands on a new calendar day."""
        day_start = _local_midnight(as_of or self._clock())
        reset_at = self.state.daily_loss_reset_at
        if reset_at is None or reset_at < day_start:
            if reset_at is not None:
                logger.info("Daily loss counter reset (was %s)", self.state.daily_loss)
            self.state.daily_loss = Decimal(0)
            self.state.daily_loss_reset_at = day_start

    def update_daily_loss(self, loss: Decimal, as_of: Optional[datetime] = None) -> None:
        """Add a realized loss (positive amount) to today's counter."""
        self._roll_day(as_of)
        self.state.daily_loss += abs(Decimal(loss))
        logger.debug("Daily loss updated: %s / limit %s", self.state.daily_loss, self.max_daily_loss)

    def is_daily_loss_exceeded(self, as_of: Optional[datetime] = None) -> bool:
        self._roll_day(as_of)
        return self.state.daily_loss > self.max_daily_loss

    def reset_daily_loss(self, as_of: Optional[datetime] = None) -> None:
        """Manual reset, e.g. at a session boundary the caller owns."""
        self.state.daily_loss = Decimal(0)
        self.state.daily_loss_reset_at = _local_midnight(as_of or self._clock())

    # -- drawdown -----------------------------------------------------------

    def update_drawdown(self, current_balance: Decimal) -> Decimal:
        """Raise the peak if exceeded, track the worst drawdown seen. Returns current drawdown."""
        if current_balance > self.state.peak_balance:
            self.state.peak_balance = current_balance
        if self.state.peak_balance <= 0:
            return Decimal(0)
        drawdown = (self.state.peak_balance - current_balance) / self.state.peak_balance
        if drawdown > self.state.max_drawdown_observed:
            self.state.max_drawdown_observed = drawdown
        if drawdown > DRAWDOWN_WARN:
            logger.warning(
                "Significant drawdown: %.2f%% (max %.2f%%) peak=%s current=%s",
                drawdown * 100, self.state.max_drawdown_observed * 100,
                self.state.peak_balance, current_balance,
            )
        return drawdown

    def is_drawdown_exceeded(self, current_balance: Decimal) -> bool:
        """Fresh drawdown vs the cap. The first observed balance seeds the peak."""
        if self.state.peak_balance == 0:
            self.state.peak_balance = current_balance
            return False
        drawdown = (self.state.peak_balance - current_balance) / self.state.peak_balance
        return drawdown > self.max_drawdown

    # -- validation ---------------------------------------------------------

    @staticmethod
    def total_exposure(positions: Iterable[Position]) -> Decimal:
        return sum(
            (p.market_value for p in positions if p.status == PositionStatus.OPEN),
            Decimal(0),
        )

    def validate_trade(
        self,
        signal: TradingSignal,
        proposed_size: Decimal,
        balance: Decimal,
        open_positions: Iterable[Position],
        as_of: Optional[datetime] = None,
    ) -> RiskResult:
        """Approve, shrink, or reject a proposed trade. Adjusted size never exceeds proposed."""
        positions = [p for p in open_positions if p.status != PositionStatus.CLOSED]
        if len(positions) >= self.max_open_positions:
            return RiskResult(False, reason=f"Maximum open positions ({self.max_open_positions}) reached")

        if self.is_daily_loss_exceeded(as_of):
            return RiskResult(False, reason=f"Daily loss limit ({self.max_daily_loss:.2f}) exceeded")

        if self.is_drawdown_exceeded(balance):
            return RiskResult(False, reason=f"Maximum drawdown ({self.max_drawdown * 100:.1f}%) exceeded")

        price = signal.price
        size = proposed_size
        reason = ""

        current_exposure = self.total_exposure(positions)
        max_exposure = balance * MAX_EXPOSURE_FRACTION
        if current_exposure + size * price > max_exposure:
            headroom = max_exposure - current_exposure
            if headroom <= 0:
                return RiskResult(False, reason="Maximum exposure limit reached")
            size = headroom / price
            reason = (
                f"Position size adjusted from {proposed_size:.4f} to {size:.4f} due to exposure limits"
            )

        risk_amount = balance * self.risk_per_trade
        risk_based_size = risk_amount / (price * RISK_STOP_FRACTION)
        capped = min(size, risk_based_size, self.max_position_size)
        if capped < size and not reason:
            reason = "Position size adjusted for risk management"
        size = capped

        position_value = size * price
        if position_value < MIN_POSITION_VALUE:
            return RiskResult(
                False,
                reason=f"Position value ({position_value:.2f}) below minimum (${MIN_POSITION_VALUE})",
            )

        if signal.strength < MIN_RISK_STRENGTH:
            return RiskResult(
                False,
                reason=f"Signal strength ({signal.strength:.2f}) too weak (minimum: {MIN_RISK_STRENGTH})",
            )

        if size != proposed_size:
            return RiskResult(True, adjusted_size=size, reason=reason)
        return RiskResult(True)

    # -- exits --------------------------------------------------------------

    def should_close_position(self, position: Position, now: Optional[datetime] = None) -> ExitDecision:
        """Stop-loss, take-profit, 24h age, then -10% emergency stop. First hit wins."""
        if position.status != PositionStatus.OPEN or position.current_price is None:
            return ExitDecision(False)
        price = position.current_price
        long = position.side == PositionSide.LONG

        if position.stop_loss is not None:
            if (long and price <= position.stop_loss) or (not long and price >= position.stop_loss):
                return ExitDecision(True, "Stop loss triggered")

        if position.take_profit is not None:
            if (long and price >= position.take_profit) or (not long and price <= position.take_profit):
                return ExitDecision(True, "Take profit reached")

        now = now or self._clock()
        if now - position.entry_time > MAX_POSITION_AGE:
            return ExitDecision(True, "Position age exceeded 24 hours")

        if position.pnl_percent is not None and position.pnl_percent < EMERGENCY_STOP_PCT:
            return ExitDecision(True, "Emergency stop - loss exceeded 10%")

        return ExitDecision(False)

    # -- reporting ----------------------------------------------------------

    def get_risk_metrics(self) -> dict:
        return {
            "daily_loss": f"{self.state.daily_loss:.2f}",
            "max_drawdown": f"{self.state.max_drawdown_observed * 100:.2f}%",
            "peak_balance": f"{self.state.peak_balance:.2f}",
            "risk_limits": {
                "max_position_size": f"{self.max_position_size:.2f}",
                "max_open_positions": self.max_open_positions,
                "risk_per_trade": f"{self.risk_per_trade * 100:.1f}%",
                "max_daily_loss": f"{self.max_daily_loss:.2f}",
                "max_drawdown": f"{self.max_drawdown * 100:.1f}%",
            },
        }

    def reset_metrics(self, as_of: Optional[datetime] = None) -> None:
        """Start a new trading period: zero all counters."""
        self.state = RiskState(daily_loss_reset_at=_local_midnight(as_of or self._clock()))
        logger.info("Risk metrics reset")
