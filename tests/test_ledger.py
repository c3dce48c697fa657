"""Unit tests for backtesting.ledger and execution.paper."""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from reversion_bot.backtesting.ledger import Ledger
from reversion_bot.core.errors import PositionStateError
from reversion_bot.core.types import SignalType, TradeSide, TradeStatus
from reversion_bot.execution.paper import PaperExecutionSink
from reversion_bot.utils.precision import round_quantity

STEP = Decimal("0.00000001")


def test_paper_fill_fee_and_slippage(make_signal):
    sink = PaperExecutionSink(fee_bps=Decimal(25), slippage_bps=Decimal(10))
    buy = sink.execute_trade(make_signal(SignalType.BUY, price=100), Decimal(2))
    assert buy.ok
    assert buy.side == TradeSide.BUY
    assert buy.price == Decimal("100.1")
    assert buy.fee == Decimal("100.1") * 2 * Decimal("0.0025")
    sell = sink.execute_trade(make_signal(SignalType.SELL, price=100), Decimal(2))
    assert sell.price == Decimal("99.9")
    assert buy.id == "paper-000001"
    assert sell.id == "paper-000002"


def test_paper_fill_failures_are_returned(make_signal):
    sink = PaperExecutionSink()
    failed = sink.execute_trade(make_signal(SignalType.BUY), Decimal(0))
    assert failed.status == TradeStatus.FAILED
    assert failed.error
    hold = sink.execute_trade(make_signal(SignalType.HOLD), Decimal(1))
    assert hold.status == TradeStatus.FAILED


def test_buy_and_sell_move_cash(make_signal):
    ledger = Ledger(Decimal(1000))
    sink = PaperExecutionSink(fee_bps=Decimal(25))
    buy = sink.execute_trade(make_signal(SignalType.BUY, price=100), Decimal(2))
    position = ledger.apply_buy(buy, Decimal(95), Decimal(110))
    assert position.id == "pos-000001"
    assert ledger.balance == Decimal(1000) - Decimal(200) - Decimal("0.5")
    assert ledger.equity() == ledger.balance + 200

    ledger.mark_to_market(Decimal(105))
    assert position.pnl == 10
    sell = sink.execute_trade(make_signal(SignalType.SELL, price=105), Decimal(2))
    assert ledger.apply_sell(position, sell, "Take profit reached")
    assert position.exit_reason == "Take profit reached"
    assert ledger.balance == Decimal(1000) + position.pnl - ledger.total_fees
    assert ledger.open_positions() == []
    assert ledger.closed_positions() == [position]


def test_failed_buy_is_logged_only(make_signal):
    ledger = Ledger(Decimal(1000))
    failed = PaperExecutionSink().execute_trade(make_signal(SignalType.BUY), Decimal(0))
    assert ledger.apply_buy(failed) is None
    assert ledger.balance == 1000
    assert ledger.trades == [failed]
    assert ledger.positions == []


def test_buy_beyond_cash_is_refused(make_signal):
    ledger = Ledger(Decimal(100))
    trade = PaperExecutionSink().execute_trade(make_signal(SignalType.BUY, price=100), Decimal(1))
    assert not ledger.can_afford(Decimal(1), Decimal(100), Decimal("0.0025"))
    assert ledger.apply_buy(trade) is None
    assert ledger.balance == 100
    assert [t.status for t in ledger.trades] == [TradeStatus.FAILED]
    assert ledger.trades[0].error == "insufficient cash at fill"
    assert ledger.open_positions() == []


def test_position_closes_once(make_signal):
    ledger = Ledger(Decimal(1000))
    sink = PaperExecutionSink()
    position = ledger.apply_buy(sink.execute_trade(make_signal(SignalType.BUY), Decimal(1)))
    sell = sink.execute_trade(make_signal(SignalType.SELL), Decimal(1))
    assert ledger.apply_sell(position, sell) is True
    assert ledger.apply_sell(position, sell) is False
    with pytest.raises(PositionStateError):
        position.close(Decimal(100), datetime(2024, 1, 2))
    with pytest.raises(PositionStateError):
        position.mark(Decimal(100))


def test_thousand_round_trips_reconcile_exactly(make_signal):
    initial = Decimal(10000)
    ledger = Ledger(initial)
    sink = PaperExecutionSink(fee_bps=Decimal(25), slippage_bps=Decimal(3))
    t0 = datetime(2024, 1, 1)
    for i in range(1000):
        entry = Decimal(100) + Decimal(i % 37) / 10
        exit_ = entry + Decimal(i % 11 - 5) / 10
        size = round_quantity(Decimal("1.2345678912") + Decimal(i % 7) / 3, STEP)
        when = t0 + timedelta(minutes=15 * i)
        buy = sink.execute_trade(make_signal(SignalType.BUY, price=entry, timestamp=when), size)
        position = ledger.apply_buy(buy)
        assert position is not None
        sell = sink.execute_trade(make_signal(SignalType.SELL, price=exit_, timestamp=when), size)
        assert ledger.apply_sell(position, sell)

    closed = ledger.closed_positions()
    assert len(closed) == 1000
    assert not ledger.open_positions()
    total_pnl = sum((p.pnl for p in closed), Decimal(0))
    assert ledger.balance == initial + total_pnl - ledger.total_fees
    assert sum(1 for t in ledger.trades if t.side == TradeSide.BUY) == 1000
    assert sum(1 for t in ledger.trades if t.side == TradeSide.SELL) == 1000
