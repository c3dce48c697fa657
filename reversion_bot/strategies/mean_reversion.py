"""
Mean-reversion signal engine.

Classifies the z-score of the current price against its moving average,
then applies optional confirmation boosts (RSI extreme, Bollinger breach,
counter-trend vs EMA). Deterministic: no state beyond configured parameters.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional, Sequence

from reversion_bot.core.types import Indicators, PriceBar, SignalType, TradingSignal
from reversion_bot.indicators.calculator import IndicatorCalculator
from reversion_bot.strategies.base import BaseStrategy, RiskLevels

logger = logging.getLogger("reversion_bot.strategy")

MIN_SIGNAL_STRENGTH = 0.3
HOLD_STRENGTH = 0.1
AFFORDABILITY_BUFFER = Decimal("0.95")


@dataclass(frozen=True)
class ScoreAdjustment:
    """
    Additive strength boost. `check` returns a reason fragment when the
    confirmation holds, None when it does not or the indicator is missing.
    """
    name: str
    boost: float
    check: Callable[[SignalType, Decimal, Indicators], Optional[str]]


def _rsi_extreme(signal_type: SignalType, price: Decimal, ind: Indicators) -> Optional[str]:
    if ind.rsi is None:
        return None
    if signal_type == SignalType.BUY and ind.rsi < 30:
        return "RSI oversold"
    if signal_type == SignalType.SELL and ind.rsi > 70:
        return "RSI overbought"
    return None


def _band_breach(signal_type: SignalType, price: Decimal, ind: Indicators) -> Optional[str]:
    if signal_type == SignalType.BUY and price < ind.lower_band:
        return "price below lower Bollinger Band"
    if signal_type == SignalType.SELL and price > ind.upper_band:
        return "price above upper Bollinger Band"
    return None


def _counter_trend(signal_type: SignalType, price: Decimal, ind: Indicators) -> Optional[str]:
    # Reverting against the EMA trend scores higher here, not lower.
    if ind.ema is None:
        return None
    bullish = price > ind.ema
    if signal_type == SignalType.BUY and not bullish:
        return "counter-trend to bearish EMA"
    if signal_type == SignalType.SELL and bullish:
        return "counter-trend to bullish EMA"
    return None


CONFIRMATIONS: tuple[ScoreAdjustment, ...] = (
    ScoreAdjustment("rsi", 0.2, _rsi_extreme),
    ScoreAdjustment("bollinger", 0.1, _band_breach),
    ScoreAdjustment("ema_trend", 0.05, _counter_trend),
)


def apply_confirmations(
    signal_type: SignalType,
    price: Decimal,
    indicators: Indicators,
    strength: float,
    adjustments: Sequence[ScoreAdjustment] = CONFIRMATIONS,
) -> tuple[float, list[str]]:
    """Apply boosts in order, capping at 1.0. Returns (strength, reason fragments)."""
    reasons: list[str] = []
    for adj in adjustments:
        fragment = adj.check(signal_type, price, indicators)
        if fragment is not None:
            strength = min(strength + adj.boost, 1.0)
            reasons.append(fragment)
    return strength, reasons


class SignalEngine(BaseStrategy):
    """
    BUY when price is far below its mean, SELL when far above:
      z <= -std_dev_multiplier          strong,   strength min(|z|/3, 1)
      z <= -entry_threshold             moderate, strength min(|z|/2, 0.7)
      |z| < exit_threshold              HOLD 0.1 (informative)
    mirrored for SELL. Signals under 0.3 are discarded.
    """

    def __init__(
        self,
        ma_period: int = 20,
        std_dev_multiplier: Decimal = Decimal(2),
        entry_threshold: Decimal = Decimal("0.5"),
        exit_threshold: Decimal = Decimal("0.1"),
        stop_loss_percent: Decimal = Decimal("0.05"),
        take_profit_percent: Decimal = Decimal("0.10"),
        min_volume: Decimal = Decimal(10000),
        max_position_size: Decimal = Decimal(1000),
        risk_per_trade: Decimal = Decimal("0.02"),
    ):
        self.ma_period = ma_period
        self.std_dev_multiplier = Decimal(std_dev_multiplier)
        self.entry_threshold = Decimal(entry_threshold)
        self.exit_threshold = Decimal(exit_threshold)
        self.stop_loss_percent = Decimal(stop_loss_percent)
        self.take_profit_percent = Decimal(take_profit_percent)
        self.min_volume = Decimal(min_volume)
        self.max_position_size = Decimal(max_position_size)
        self.risk_per_trade = Decimal(risk_per_trade)
        self.calculator = IndicatorCalculator(ma_period, self.std_dev_multiplier)

    @property
    def min_bars(self) -> int:
        return self.ma_period

    def analyze(self, bars: Sequence[PriceBar]) -> Optional[TradingSignal]:
        if len(bars) < self.ma_period:
            logger.debug("Insufficient data for analysis. Need %d bars, have %d", self.ma_period, len(bars))
            return None
        last = bars[-1]
        indicators = self.calculator.calculate([b.close for b in bars])
        if indicators is None:
            return None
        signal = self.generate_signal(last.close, indicators, last.volume, last.timestamp)
        if signal is not None:
            logger.debug(
                "Signal %s strength=%.2f price=%s z=%.3f sma=%s",
                signal.type.value, signal.strength, signal.price,
                signal.indicators.z_score, indicators.sma,
            )
        return signal

    def _classify(self, z: Decimal) -> tuple[SignalType, float, str]:
        abs_z = abs(z)
        if z <= -self.std_dev_multiplier:
            return (SignalType.BUY, min(float(abs_z) / 3, 1.0),
                    f"Price {abs_z:.2f} std devs below mean - strong oversold")
        if z >= self.std_dev_multiplier:
            return (SignalType.SELL, min(float(abs_z) / 3, 1.0),
                    f"Price {abs_z:.2f} std devs above mean - strong overbought")
        if z <= -self.entry_threshold:
            return (SignalType.BUY, min(float(abs_z) / 2, 0.7),
                    f"Price {abs_z:.2f} std devs below mean - moderate oversold")
        if z >= self.entry_threshold:
            return (SignalType.SELL, min(float(abs_z) / 2, 0.7),
                    f"Price {abs_z:.2f} std devs above mean - moderate overbought")
        if abs_z < self.exit_threshold:
            return SignalType.HOLD, HOLD_STRENGTH, "Price near mean - neutral zone"
        return SignalType.HOLD, 0.0, ""

    def generate_signal(
        self,
        price: Decimal,
        indicators: Indicators,
        volume: Decimal,
        timestamp: datetime,
    ) -> Optional[TradingSignal]:
        """Map (price, indicators, volume) to a signal, or None when not actionable."""
        if volume < self.min_volume:
            logger.debug("Volume too low for trading signal: %s < %s", volume, self.min_volume)
            return None
        if indicators.std_dev <= 0:
            logger.debug("Zero variance window, no z-score")
            return None

        z = (price - indicators.sma) / indicators.std_dev
        signal_type, strength, reason = self._classify(z)
        if signal_type != SignalType.HOLD:
            strength, fragments = apply_confirmations(signal_type, price, indicators, strength)
            if fragments:
                reason = ", ".join([reason] + fragments)

        strength = max(0.0, min(strength, 1.0))
        if strength < MIN_SIGNAL_STRENGTH:
            return None

        snapshot = Indicators(
            sma=indicators.sma,
            std_dev=indicators.std_dev,
            upper_band=indicators.upper_band,
            lower_band=indicators.lower_band,
            z_score=z,
            rsi=indicators.rsi,
            ema=indicators.ema,
        )
        return TradingSignal(
            type=signal_type,
            strength=strength,
            price=price,
            timestamp=timestamp,
            indicators=snapshot,
            reason=reason,
        )

    def calculate_position_size(
        self, signal: TradingSignal, available_balance: Decimal, current_price: Decimal
    ) -> Decimal:
        """
        min(strength-scaled max size, risk budget / stop distance, affordable size
        with a 5% balance buffer). All three ceilings hold at once.
        """
        if available_balance <= 0 or current_price <= 0:
            return Decimal(0)
        by_strength = self.max_position_size * Decimal(str(signal.strength))
        risk_amount = available_balance * self.risk_per_trade
        stop_distance = current_price * self.stop_loss_percent
        by_risk = risk_amount / stop_distance
        affordable = available_balance / current_price * AFFORDABILITY_BUFFER
        return min(by_strength, by_risk, affordable)

    def calculate_risk_levels(self, entry_price: Decimal, signal_type: SignalType) -> RiskLevels:
        if signal_type == SignalType.BUY:
            return RiskLevels(
                stop_loss=entry_price * (1 - self.stop_loss_percent),
                take_profit=entry_price * (1 + self.take_profit_percent),
            )
        if signal_type == SignalType.SELL:
            return RiskLevels(
                stop_loss=entry_price * (1 + self.stop_loss_percent),
                take_profit=entry_price * (1 - self.take_profit_percent),
            )
        raise ValueError("HOLD has no risk levels")


@dataclass
class SignalDeduplicator:
    """
    Cycle-to-cycle memory of the last acted-on signal. A signal of the same
    type within window_seconds of the previous one is a duplicate.
    """
    window_seconds: float = 300.0
    last_type: Optional[SignalType] = None
    last_timestamp: Optional[datetime] = None

    def is_duplicate(self, signal: TradingSignal) -> bool:
        if self.last_type is None or self.last_timestamp is None:
            return False
        if signal.type != self.last_type:
            return False
        return abs((signal.timestamp - self.last_timestamp).total_seconds()) < self.window_seconds

    def remember(self, signal: TradingSignal) -> None:
        self.last_type = signal.type
        self.last_timestamp = signal.timestamp

    def reset(self) -> None:
        self.last_type = None
        self.last_timestamp = None
