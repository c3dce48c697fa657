"""
Paper execution: fills at the signal price, with optional slippage against us
and a proportional fee. Shared by the backtest simulator and paper trading.
"""

from __future__ import annotations
import itertools
import logging
from decimal import Decimal
from typing import Optional

from reversion_bot.core.types import SignalType, Trade, TradeSide, TradeStatus, TradingSignal
from reversion_bot.execution.base import ExecutionSink, trade_side
from reversion_bot.utils.precision import bps

logger = logging.getLogger("reversion_bot.execution.paper")


class PaperExecutionSink(ExecutionSink):
    """Simulated fills. Trade ids are sequential per sink: '<prefix>-000001'."""

    def __init__(self, fee_bps: Decimal = Decimal(25), slippage_bps: Decimal = Decimal(0), id_prefix: str = "paper"):
        self.fee_rate = bps(fee_bps)
        self.slippage = bps(slippage_bps)
        self.id_prefix = id_prefix
        self._ids = itertools.count(1)

    def _next_id(self) -> str:
        return f"{self.id_prefix}-{next(self._ids):06d}"

    def fill_price(self, side: TradeSide, price: Decimal) -> Decimal:
        """Buys fill higher, sells lower."""
        if side == TradeSide.BUY:
            return price * (1 + self.slippage)
        return price * (1 - self.slippage)

    def execute_trade(self, signal: TradingSignal, size: Decimal) -> Optional[Trade]:
        trade_id = self._next_id()
        try:
            side = trade_side(signal)
            if size <= 0:
                raise ValueError(f"non-positive size {size}")
            price = self.fill_price(side, signal.price)
            fee = price * size * self.fee_rate
        except (ValueError, ArithmeticError) as e:
            logger.warning("Paper fill failed for %s: %s", trade_id, e)
            return Trade(
                id=trade_id,
                timestamp=signal.timestamp,
                side=TradeSide.SELL if signal.type == SignalType.SELL else TradeSide.BUY,
                price=Decimal(0),
                size=size,
                fee=Decimal(0),
                status=TradeStatus.FAILED,
                error=str(e),
            )
        return Trade(
            id=trade_id,
            timestamp=signal.timestamp,
            side=side,
            price=price,
            size=size,
            fee=fee,
            status=TradeStatus.SUCCESS,
        )
