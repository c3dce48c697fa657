"""
Backtest simulator: replays bars through the same SignalEngine and RiskManager
used live, against a simulated Ledger. Only closed bars are used.
"""

from __future__ import annotations
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional, Sequence, Union

from reversion_bot.analytics.metrics import compute_metrics, max_drawdown
from reversion_bot.core.errors import NoHistoricalDataError
from reversion_bot.core.types import (
    Position,
    PriceBar,
    SignalType,
    Trade,
    TradeSide,
    TradingSignal,
)
from reversion_bot.data.provider import InMemoryPriceProvider, PriceProvider, naive_utc
from reversion_bot.execution.base import ExecutionSink, exit_signal
from reversion_bot.execution.paper import PaperExecutionSink
from reversion_bot.backtesting.ledger import Ledger
from reversion_bot.monitoring.sinks import MetricsSink, emit
from reversion_bot.risk.manager import RiskManager
from reversion_bot.strategies.base import BaseStrategy
from reversion_bot.utils.precision import round_quantity

logger = logging.getLogger("reversion_bot.backtest")

HUNDRED = Decimal(100)
PROGRESS_EVERY = 100


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if hasattr(value, "__dataclass_fields__"):
        return {k: _jsonable(getattr(value, k)) for k in value.__dataclass_fields__}
    return value


@dataclass
class BacktestResult:
    """Aggregate snapshot of one run. Read-only once returned."""
    start_date: Optional[datetime]
    end_date: Optional[datetime]
    initial_balance: Decimal
    final_balance: Decimal
    total_return: Decimal
    total_return_percent: Decimal
    total_trades: int
    winning_trades: int
    losing_trades: int
    win_rate: Decimal
    average_win: Decimal
    average_loss: Decimal
    profit_factor: Decimal
    sharpe_ratio: Decimal
    max_drawdown: Decimal
    expectancy: Decimal = Decimal(0)
    total_fees: Decimal = Decimal(0)
    trades: List[Trade] = field(default_factory=list)
    positions: List[Position] = field(default_factory=list)
    equity_curve: List[Decimal] = field(default_factory=list)

    def to_dict(self, include_equity_curve: bool = False) -> dict:
        """JSON-compatible record: Decimals as strings, datetimes ISO-8601."""
        data = _jsonable(self)
        if not include_equity_curve:
            data.pop("equity_curve", None)
        return data

    def save_json(self, output_dir: Union[str, Path], stamp: Optional[datetime] = None) -> Path:
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        stamp = stamp or datetime.now()
        path = output_dir / f"backtest-{stamp.strftime('%Y-%m-%dT%H-%M-%S')}.json"
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.info("Results saved to %s", path)
        return path


class BacktestSimulator:
    """
    Per bar: window append/trim, mark open positions, risk exits, signal ->
    size -> validate -> execute, equity/drawdown update. Remaining positions
    are force-closed at the last close.
    """

    def __init__(
        self,
        strategy: BaseStrategy,
        risk_manager: RiskManager,
        initial_balance: Decimal = Decimal(10000),
        execution: Optional[ExecutionSink] = None,
        fee_bps: Decimal = Decimal(25),
        lot_step: Decimal = Decimal("0.00000001"),
        metrics: Optional[MetricsSink] = None,
    ):
        self.strategy = strategy
        self.risk_manager = risk_manager
        self.initial_balance = Decimal(initial_balance)
        self.execution = execution or PaperExecutionSink(fee_bps=fee_bps, id_prefix="bt")
        self.fee_rate = Decimal(fee_bps) / Decimal(10000)
        self.lot_step = Decimal(lot_step)
        self.metrics = metrics or MetricsSink()
        self.ledger = Ledger(self.initial_balance)
        self.equity_curve: List[Decimal] = []

    def _load(
        self,
        data: Union[PriceProvider, Sequence[PriceBar]],
        start: Optional[datetime],
        end: Optional[datetime],
    ) -> List[PriceBar]:
        provider = data if isinstance(data, PriceProvider) else InMemoryPriceProvider(data)
        bars = provider.get_price_history()
        if start is not None:
            start = naive_utc(start)
            bars = [b for b in bars if naive_utc(b.timestamp) >= start]
        if end is not None:
            end = naive_utc(end)
            bars = [b for b in bars if naive_utc(b.timestamp) <= end]
        if not bars:
            raise NoHistoricalDataError("No historical data available for the specified period")
        return bars

    def run(
        self,
        data: Union[PriceProvider, Sequence[PriceBar]],
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> BacktestResult:
        """Replay bars and return the result. Raises NoHistoricalDataError when the window is empty."""
        bars = self._load(data, start, end)
        logger.info("Starting backtest on %d bars (%s -> %s)", len(bars), bars[0].timestamp, bars[-1].timestamp)

        self.ledger = Ledger(self.initial_balance)
        self.equity_curve = [self.initial_balance]
        self.risk_manager.reset_metrics(as_of=bars[0].timestamp)
        self.risk_manager.update_drawdown(self.initial_balance)

        period = self.strategy.min_bars
        window: List[PriceBar] = []
        for i, bar in enumerate(bars):
            window.append(bar)
            if len(window) > period * 2:
                window = window[-period * 2:]
            if len(window) < period:
                continue
            self._step(bar, window)
            if i % PROGRESS_EVERY == 0:
                logger.info(
                    "Backtest progress: %.1f%% - Balance: %.2f",
                    i / len(bars) * 100, self.ledger.balance,
                )

        last = bars[-1]
        for position in self.ledger.open_positions():
            if not self._close(position, last.close, last.timestamp, "End of backtest"):
                logger.warning("Sink could not close %s at end of backtest; settling at last close", position.id)
                self.ledger.settle(position, last.close, last.timestamp, self.fee_rate, "End of backtest")
        self.equity_curve.append(self.ledger.equity())

        result = self._result(bars[0].timestamp, last.timestamp)
        logger.info(
            "Backtest completed: final=%.2f return=%.2f%% trades=%d win_rate=%.1f%%",
            result.final_balance, result.total_return_percent, result.total_trades, result.win_rate,
        )
        return result

    def _step(self, bar: PriceBar, window: List[PriceBar]) -> None:
        self.ledger.mark_to_market(bar.close)

        for position in self.ledger.open_positions():
            decision = self.risk_manager.should_close_position(position, now=bar.timestamp)
            if decision.should_close:
                self._close(position, bar.close, bar.timestamp, decision.reason)

        signal = self.strategy.analyze(window)
        if signal is not None and signal.type != SignalType.HOLD:
            emit(self.metrics.on_signal, signal)
            self._process_signal(signal, bar)

        equity = self.ledger.equity()
        self.risk_manager.update_drawdown(equity)
        self.equity_curve.append(equity)

    def _process_signal(self, signal: TradingSignal, bar: PriceBar) -> None:
        open_positions = self.ledger.open_positions()
        proposed = self.strategy.calculate_position_size(signal, self.ledger.balance, signal.price)
        validation = self.risk_manager.validate_trade(
            signal, proposed, self.ledger.equity(), open_positions, as_of=bar.timestamp,
        )
        if not validation.allowed:
            logger.debug("Signal %s rejected at %s: %s", signal.type.value, bar.timestamp, validation.reason)
            return
        size = round_quantity(validation.final_size(proposed), self.lot_step)

        if signal.type == SignalType.BUY:
            fill = self.execution.fill_price(TradeSide.BUY, signal.price)
            if size <= 0 or not self.ledger.can_afford(size, fill, self.fee_rate):
                return
            trade = self.execution.execute_trade(signal, size)
            if trade is None:
                return
            levels = self.strategy.calculate_risk_levels(trade.price, SignalType.BUY)
            position = self.ledger.apply_buy(trade, levels.stop_loss, levels.take_profit)
            emit(self.metrics.on_trade, trade)
            if position is not None:
                logger.debug("Opened %s size=%s @ %s (%s)", position.id, size, trade.price, signal.reason)
        elif signal.type == SignalType.SELL and open_positions:
            # Only the first open position is closed per SELL signal.
            self._close(open_positions[0], signal.price, signal.timestamp, signal.reason)

    def _close(self, position: Position, price: Decimal, timestamp: datetime, reason: str) -> bool:
        trade = self.execution.execute_trade(exit_signal(price, timestamp, reason), position.size)
        if trade is None:
            return False
        closed = self.ledger.apply_sell(position, trade, reason)
        emit(self.metrics.on_trade, trade)
        if closed and position.pnl is not None and position.pnl < 0:
            self.risk_manager.update_daily_loss(-position.pnl, as_of=timestamp)
        if closed:
            logger.debug("Closed %s @ %s pnl=%s (%s)", position.id, trade.price, position.pnl, reason)
        return closed

    def _result(self, start: datetime, end: datetime) -> BacktestResult:
        ledger = self.ledger
        stats = compute_metrics(ledger.positions)
        total_return = ledger.balance - self.initial_balance
        return BacktestResult(
            start_date=start,
            end_date=end,
            initial_balance=self.initial_balance,
            final_balance=ledger.balance,
            total_return=total_return,
            total_return_percent=total_return / self.initial_balance * HUNDRED,
            total_trades=stats.total_trades,
            winning_trades=stats.winning_trades,
            losing_trades=stats.losing_trades,
            win_rate=stats.win_rate,
            average_win=stats.average_win,
            average_loss=stats.average_loss,
            profit_factor=stats.profit_factor,
            sharpe_ratio=stats.sharpe_ratio,
            max_drawdown=max_drawdown(self.equity_curve),
            expectancy=stats.expectancy,
            total_fees=ledger.total_fees,
            trades=list(ledger.trades),
            positions=list(ledger.positions),
            equity_curve=list(self.equity_curve),
        )
