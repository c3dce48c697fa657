"""
Live trading cycle: one serial pass of price -> exits -> signal -> risk ->
execution per scheduled tick. Cycles never overlap; a failing cycle is
logged and the next one still runs.
"""

from __future__ import annotations
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

from reversion_bot.backtesting.ledger import Ledger
from reversion_bot.core.types import Position, SignalType, Trade, TradeSide, TradingSignal
from reversion_bot.data.provider import PriceProvider, utc_now
from reversion_bot.execution.base import ExecutionSink, exit_signal
from reversion_bot.monitoring.sinks import MetricsSink, emit
from reversion_bot.risk.manager import RiskManager
from reversion_bot.strategies.base import BaseStrategy
from reversion_bot.strategies.mean_reversion import SignalDeduplicator
from reversion_bot.utils.precision import bps, round_quantity

logger = logging.getLogger("reversion_bot.live")


@dataclass
class CycleOutcome:
    """What one cycle did: insufficient_data | no_signal | hold | duplicate | rejected | simulated | executed | failed."""
    action: str
    signal: Optional[TradingSignal] = None
    trade: Optional[Trade] = None
    reason: str = ""


class LiveTrader:
    """Paper/live account driver around the same strategy and risk manager as the backtester."""

    def __init__(
        self,
        provider: PriceProvider,
        strategy: BaseStrategy,
        risk_manager: RiskManager,
        execution: ExecutionSink,
        metrics: Optional[MetricsSink] = None,
        balance: Decimal = Decimal(1000),
        trading_enabled: bool = False,
        dedup_seconds: float = 300.0,
        fee_bps: Decimal = Decimal(25),
        lot_step: Decimal = Decimal("0.00000001"),
        clock: Callable[[], datetime] = utc_now,
    ):
        self.provider = provider
        self.strategy = strategy
        self.risk_manager = risk_manager
        self.execution = execution
        self.metrics = metrics or MetricsSink()
        self.ledger = Ledger(Decimal(balance))
        self.trading_enabled = trading_enabled
        self.dedup = SignalDeduplicator(window_seconds=dedup_seconds)
        self.fee_rate = bps(fee_bps)
        self.lot_step = Decimal(lot_step)
        self._clock = clock
        self.cycles = 0

    def run_cycle(self, now: Optional[datetime] = None) -> CycleOutcome:
        now = now or self._clock()
        self.cycles += 1
        history = self.provider.get_price_history()
        if len(history) < self.strategy.min_bars:
            logger.debug("Insufficient price history for analysis (%d bars)", len(history))
            return CycleOutcome("insufficient_data")

        price = self.provider.get_current_price()
        logger.info("Market update: price=%.4f open_positions=%d", price, len(self.ledger.open_positions()))
        self._manage_positions(price, now)

        try:
            return self._handle_signal(self.strategy.analyze(history), now)
        finally:
            self.risk_manager.update_drawdown(self.ledger.equity())
            emit(self.metrics.on_risk_metrics, self.risk_manager.get_risk_metrics())

    def _handle_signal(self, signal: Optional[TradingSignal], now: datetime) -> CycleOutcome:
        if signal is None:
            logger.debug("No trading signal generated")
            return CycleOutcome("no_signal")
        emit(self.metrics.on_signal, signal)
        logger.info(
            "New trading signal: %s strength=%.2f price=%s (%s)",
            signal.type.value, signal.strength, signal.price, signal.reason,
        )
        if signal.type == SignalType.HOLD:
            return CycleOutcome("hold", signal)
        if self.dedup.is_duplicate(signal):
            logger.debug("Ignoring duplicate signal")
            return CycleOutcome("duplicate", signal)
        self.dedup.remember(signal)

        open_positions = self.ledger.open_positions()
        proposed = self.strategy.calculate_position_size(signal, self.ledger.balance, signal.price)
        validation = self.risk_manager.validate_trade(
            signal, proposed, self.ledger.equity(), open_positions, as_of=now,
        )
        if not validation.allowed:
            logger.info("Trade rejected by risk manager: %s", validation.reason)
            return CycleOutcome("rejected", signal, reason=validation.reason)
        if validation.reason:
            logger.info(validation.reason)
        size = round_quantity(validation.final_size(proposed), self.lot_step)

        if not self.trading_enabled:
            logger.info("[SIMULATION] Would %s %.4f at %.4f", signal.type.value, size, signal.price)
            return CycleOutcome("simulated", signal)

        if signal.type == SignalType.BUY:
            return self._buy(signal, size)
        if not open_positions:
            return CycleOutcome("rejected", signal, reason="No open position to sell")
        trade = self._close(open_positions[0], signal.price, signal.timestamp, signal.reason)
        if trade is None or not trade.ok:
            return CycleOutcome("failed", signal, trade)
        return CycleOutcome("executed", signal, trade)

    def _buy(self, signal: TradingSignal, size: Decimal) -> CycleOutcome:
        fill = self.execution.fill_price(TradeSide.BUY, signal.price)
        if size <= 0 or not self.ledger.can_afford(size, fill, self.fee_rate):
            return CycleOutcome("rejected", signal, reason="Insufficient balance")
        logger.info("Executing BUY for %.4f at %.4f", size, signal.price)
        trade = self.execution.execute_trade(signal, size)
        if trade is None:
            logger.error("Trade execution failed: sink returned nothing")
            return CycleOutcome("failed", signal)
        emit(self.metrics.on_trade, trade)
        if not trade.ok:
            logger.warning("Trade execution failed: %s", trade.error)
            self.ledger.record(trade)
            return CycleOutcome("failed", signal, trade)
        levels = self.strategy.calculate_risk_levels(trade.price, SignalType.BUY)
        position = self.ledger.apply_buy(trade, levels.stop_loss, levels.take_profit)
        if position is None:
            return CycleOutcome("failed", signal, trade, reason="Insufficient balance at fill")
        logger.info("Position opened %s size=%s @ %s", position.id, position.size, position.entry_price)
        return CycleOutcome("executed", signal, trade)

    def _close(self, position: Position, price: Decimal, timestamp: datetime, reason: str) -> Optional[Trade]:
        trade = self.execution.execute_trade(exit_signal(price, timestamp, reason), position.size)
        if trade is None:
            logger.error("Close of %s failed: sink returned nothing", position.id)
            return None
        emit(self.metrics.on_trade, trade)
        if not trade.ok:
            logger.warning("Close of %s failed: %s", position.id, trade.error)
            self.ledger.record(trade)
            return trade
        self.ledger.apply_sell(position, trade, reason)
        logger.info(
            "Position closed %s: %s pnl=%.2f (%.2f%%)",
            position.id, reason, position.pnl, position.pnl_percent,
        )
        if position.pnl is not None and position.pnl < 0:
            self.risk_manager.update_daily_loss(-position.pnl, as_of=timestamp)
        return trade

    def _manage_positions(self, price: Decimal, now: datetime) -> None:
        self.ledger.mark_to_market(price)
        for position in self.ledger.open_positions():
            decision = self.risk_manager.should_close_position(position, now=now)
            if decision.should_close:
                logger.info("Closing position %s: %s", position.id, decision.reason)
                self._close(position, price, now, decision.reason)
            else:
                logger.debug("Position %s pnl=%.2f (%.2f%%)", position.id, position.pnl, position.pnl_percent)

    def shutdown(self) -> None:
        """Close every open position at the last known price."""
        if not self.trading_enabled:
            return
        positions = self.ledger.open_positions()
        if positions:
            logger.info("Closing %d open positions...", len(positions))
        now = self._clock()
        for position in positions:
            price = position.current_price if position.current_price is not None else position.entry_price
            self._close(position, price, now, "Bot shutdown")
        emit(self.metrics.on_risk_metrics, self.risk_manager.get_risk_metrics())

    def run_forever(
        self,
        interval_seconds: float,
        max_cycles: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> int:
        """Run cycles back to back on a fixed interval. Returns the number of cycles run."""
        ran = 0
        try:
            while max_cycles is None or ran < max_cycles:
                try:
                    self.run_cycle()
                except Exception as e:
                    logger.exception("Trading cycle error: %s", e)
                ran += 1
                if max_cycles is not None and ran >= max_cycles:
                    break
                sleep(interval_seconds)
        except KeyboardInterrupt:
            logger.info("Shutdown by user")
        finally:
            self.shutdown()
        return ran
