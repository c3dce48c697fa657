"""
Simulated account: cash balance, positions, and an append-only trade log.
Cash moves only through filled trades, so
    balance == initial + sum(closed pnl) - sum(fees)
holds exactly once every position is closed.
"""

from __future__ import annotations
import itertools
import logging
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from reversion_bot.core.types import (
    Position,
    PositionSide,
    PositionStatus,
    Trade,
    TradeSide,
    TradeStatus,
)

logger = logging.getLogger("reversion_bot.backtest.ledger")


class Ledger:
    """Long-only cash ledger driven by executed Trades."""

    def __init__(self, initial_balance: Decimal, id_prefix: str = "pos"):
        self.initial_balance = Decimal(initial_balance)
        self.balance = self.initial_balance
        self.positions: List[Position] = []
        self.trades: List[Trade] = []
        self.id_prefix = id_prefix
        self._ids = itertools.count(1)

    def open_positions(self) -> List[Position]:
        return [p for p in self.positions if p.status == PositionStatus.OPEN]

    def closed_positions(self) -> List[Position]:
        return [p for p in self.positions if p.status == PositionStatus.CLOSED]

    @property
    def total_fees(self) -> Decimal:
        return sum((t.fee for t in self.trades if t.ok), Decimal(0))

    def equity(self) -> Decimal:
        """Cash plus mark-to-market value of open positions."""
        return self.balance + sum((p.market_value for p in self.open_positions()), Decimal(0))

    def can_afford(self, size: Decimal, price: Decimal, fee_rate: Decimal) -> bool:
        return self.balance >= size * price * (1 + fee_rate)

    def mark_to_market(self, price: Decimal) -> None:
        for position in self.open_positions():
            position.mark(price)

    def record(self, trade: Trade) -> None:
        """Log a trade attempt without touching cash (failed fills)."""
        self.trades.append(trade)

    def apply_buy(
        self,
        trade: Trade,
        stop_loss: Optional[Decimal] = None,
        take_profit: Optional[Decimal] = None,
    ) -> Optional[Position]:
        """Debit notional + fee and open a LONG. None if the fill failed or cash is short."""
        if trade.side != TradeSide.BUY:
            raise ValueError("apply_buy needs a BUY trade")
        if not trade.ok:
            self.record(trade)
            return None
        total_cost = trade.notional + trade.fee
        if self.balance < total_cost:
            logger.warning("Insufficient cash %s for fill cost %s, trade %s not applied", self.balance, total_cost, trade.id)
            self.record(replace(trade, status=TradeStatus.FAILED, error="insufficient cash at fill"))
            return None
        self.balance -= total_cost
        self.trades.append(trade)
        position = Position(
            id=f"{self.id_prefix}-{next(self._ids):06d}",
            entry_price=trade.price,
            entry_time=trade.timestamp,
            size=trade.size,
            side=PositionSide.LONG,
            stop_loss=stop_loss,
            take_profit=take_profit,
        )
        position.mark(trade.price)
        self.positions.append(position)
        return position

    def apply_sell(self, position: Position, trade: Trade, reason: str = "") -> bool:
        """Credit notional - fee and close the position at the fill price."""
        if trade.side != TradeSide.SELL:
            raise ValueError("apply_sell needs a SELL trade")
        if not trade.ok:
            self.record(trade)
            return False
        if position.status != PositionStatus.OPEN:
            return False
        self.balance += trade.notional - trade.fee
        self.trades.append(trade)
        position.close(trade.price, trade.timestamp, reason)
        return True

    def settle(
        self,
        position: Position,
        price: Decimal,
        when: datetime,
        fee_rate: Decimal,
        reason: str = "",
    ) -> Trade:
        """
        Close a position in the books without a sink fill, at `price` less the
        usual fee. Used when the execution sink cannot close at end of run.
        """
        trade = Trade(
            id=f"{self.id_prefix}-settle-{position.id}",
            timestamp=when,
            side=TradeSide.SELL,
            price=price,
            size=position.size,
            fee=price * position.size * fee_rate,
            status=TradeStatus.SUCCESS,
        )
        self.apply_sell(position, trade, reason)
        return trade
