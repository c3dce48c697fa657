"""Unit tests for live.trader."""

from datetime import datetime, timedelta
from decimal import Decimal

from reversion_bot.core.types import PositionStatus, Trade, TradeSide, TradeStatus
from reversion_bot.data.provider import CsvPriceProvider, InMemoryPriceProvider, PriceProvider
from reversion_bot.execution.base import ExecutionSink
from reversion_bot.execution.paper import PaperExecutionSink
from reversion_bot.live.trader import LiveTrader
from reversion_bot.monitoring.sinks import MetricsSink
from reversion_bot.risk.manager import RiskManager
from reversion_bot.strategies.mean_reversion import SignalEngine


class FailingSink(ExecutionSink):
    def execute_trade(self, signal, size):
        return Trade(
            id="x-1",
            timestamp=signal.timestamp,
            side=TradeSide(signal.type.value),
            price=Decimal(0),
            size=size,
            fee=Decimal(0),
            status=TradeStatus.FAILED,
            error="exchange rejected order",
        )


class SilentSink(ExecutionSink):
    def execute_trade(self, signal, size):
        return None


class RecordingMetrics(MetricsSink):
    def __init__(self):
        self.signals, self.trades, self.risk = [], [], []

    def on_signal(self, signal):
        self.signals.append(signal)

    def on_trade(self, trade):
        self.trades.append(trade)

    def on_risk_metrics(self, metrics):
        self.risk.append(metrics)


def _trader(bars, execution=None, trading_enabled=True, metrics=None):
    last = bars[-1].timestamp if bars else datetime(2024, 1, 1)
    return LiveTrader(
        provider=InMemoryPriceProvider(bars),
        strategy=SignalEngine(ma_period=20),
        risk_manager=RiskManager(),
        execution=execution or PaperExecutionSink(),
        metrics=metrics,
        balance=Decimal(1000),
        trading_enabled=trading_enabled,
        dedup_seconds=300,
        clock=lambda: last + timedelta(minutes=1),
    )


def test_insufficient_history(make_bars):
    trader = _trader(make_bars([100] * 10))
    assert trader.run_cycle().action == "insufficient_data"


def test_simulation_mode_does_not_trade(make_bars):
    trader = _trader(make_bars([100] * 25 + [80]), trading_enabled=False)
    outcome = trader.run_cycle()
    assert outcome.action == "simulated"
    assert trader.ledger.trades == []
    assert trader.ledger.balance == 1000


def test_buy_opens_position_then_duplicate_is_ignored(make_bars):
    metrics = RecordingMetrics()
    trader = _trader(make_bars([100] * 25 + [80]), metrics=metrics)
    outcome = trader.run_cycle()
    assert outcome.action == "executed"
    positions = trader.ledger.open_positions()
    assert len(positions) == 1
    # 1000 * 0.02 / (80 * 0.05) = 5
    assert positions[0].size == 5
    assert positions[0].stop_loss == 76
    assert len(metrics.trades) == 1
    assert len(metrics.risk) == 1

    assert trader.run_cycle().action == "duplicate"
    assert len(trader.ledger.open_positions()) == 1


def test_stop_loss_closes_and_records_daily_loss(make_bars):
    bars = make_bars([100] * 25 + [80])
    trader = _trader(bars)
    trader.run_cycle()
    position = trader.ledger.open_positions()[0]

    drop = make_bars([70], start=bars[-1].timestamp + timedelta(minutes=15))[0]
    trader.provider.append(drop)
    trader.run_cycle(now=drop.timestamp + timedelta(minutes=1))
    assert position.status == PositionStatus.CLOSED
    assert position.exit_reason == "Stop loss triggered"
    assert position.pnl == -50
    assert trader.risk_manager.state.daily_loss == 50


def test_failed_execution_keeps_running(make_bars):
    trader = _trader(make_bars([100] * 25 + [80]), execution=FailingSink())
    outcome = trader.run_cycle()
    assert outcome.action == "failed"
    assert outcome.trade.error == "exchange rejected order"
    assert trader.ledger.open_positions() == []
    assert trader.ledger.balance == 1000
    assert len(trader.ledger.trades) == 1


def test_sink_returning_nothing(make_bars):
    trader = _trader(make_bars([100] * 25 + [80]), execution=SilentSink())
    assert trader.run_cycle().action == "failed"
    assert trader.ledger.trades == []


def test_broken_metrics_sink_is_ignored(make_bars):
    class Broken(MetricsSink):
        def on_signal(self, signal):
            raise RuntimeError("boom")

        def on_risk_metrics(self, metrics):
            raise RuntimeError("boom")

    trader = _trader(make_bars([100] * 25 + [80]), metrics=Broken())
    assert trader.run_cycle().action == "executed"


def test_run_forever_survives_cycle_errors():
    class Exploding(PriceProvider):
        def get_price_history(self):
            raise ConnectionError("feed down")

    trader = LiveTrader(
        provider=Exploding(),
        strategy=SignalEngine(),
        risk_manager=RiskManager(),
        execution=PaperExecutionSink(),
    )
    sleeps = []
    ran = trader.run_forever(60, max_cycles=3, sleep=sleeps.append)
    assert ran == 3
    assert sleeps == [60, 60]


def test_run_forever_stops_on_keyboard_interrupt(make_bars):
    trader = _trader(make_bars([100] * 25 + [80]))

    def interrupt(seconds):
        raise KeyboardInterrupt

    ran = trader.run_forever(60, sleep=interrupt)
    assert ran == 1
    # Shutdown closes what the first cycle opened
    assert trader.ledger.open_positions() == []
    assert trader.ledger.closed_positions()[0].exit_reason == "Bot shutdown"


def _zoned_csv(tmp_path, closes):
    lines = ["timestamp,open,high,low,close,volume"]
    for i, c in enumerate(closes):
        ts = (datetime(2024, 1, 1) + i * timedelta(minutes=15)).strftime("%Y-%m-%dT%H:%M:%SZ")
        lines.append(f"{ts},{c},{c},{c},{c},1000000")
    path = tmp_path / "prices.csv"
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def test_zoned_csv_timestamps_keep_cycles_running(tmp_path):
    provider = CsvPriceProvider(_zoned_csv(tmp_path, [100] * 25 + [80]))
    trader = LiveTrader(
        provider=provider,
        strategy=SignalEngine(ma_period=20),
        risk_manager=RiskManager(),
        execution=PaperExecutionSink(),
        balance=Decimal(1000),
        trading_enabled=True,
    )
    assert trader.run_cycle().action == "executed"
    position = trader.ledger.open_positions()[0]
    assert position.entry_time.tzinfo is None

    # Default clock is wall-clock UTC, long after the 2024 bars
    assert trader.run_cycle().action == "duplicate"
    assert position.status == PositionStatus.CLOSED
    assert position.exit_reason == "Position age exceeded 24 hours"


def test_age_exit_on_bar_clock(tmp_path):
    bars = CsvPriceProvider(_zoned_csv(tmp_path, [100] * 25 + [80])).get_price_history()
    trader = _trader(bars)
    trader.run_cycle()
    position = trader.ledger.open_positions()[0]
    trader.run_cycle(now=bars[-1].timestamp + timedelta(hours=23))
    assert position.status == PositionStatus.OPEN
    trader.run_cycle(now=bars[-1].timestamp + timedelta(hours=25))
    assert position.exit_reason == "Position age exceeded 24 hours"


def test_affordability_uses_fill_price_with_slippage(make_bars):
    # 5 units quoted at 80 fill at 200 with 150% slippage: 1002.50 > 1000 cash
    trader = _trader(make_bars([100] * 25 + [80]), execution=PaperExecutionSink(slippage_bps=Decimal(15000)))
    outcome = trader.run_cycle()
    assert outcome.action == "rejected"
    assert outcome.reason == "Insufficient balance"
    assert trader.ledger.trades == []
    assert trader.ledger.balance == 1000
