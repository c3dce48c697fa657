#!/usr/bin/env python3
"""
Mean Reversion Bot CLI: backtest | live | optimize
Usage:
  python main.py backtest [--config config.yaml] [--data prices.csv] [--start 2024-01-01] [--end 2024-03-01]
  python main.py live [--config config.yaml] [--data prices.csv] [--cycles N]
  python main.py optimize [--config config.yaml] [--data prices.csv]
"""

from __future__ import annotations
import argparse
import logging
import sys
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Optional

# Project root
ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from reversion_bot.core.config import Config, load_config
from reversion_bot.core.errors import ConfigError, NoHistoricalDataError
from reversion_bot.core.logger import setup_logging
from reversion_bot.strategies.mean_reversion import SignalEngine
from reversion_bot.risk.manager import RiskManager
from reversion_bot.execution.paper import PaperExecutionSink
from reversion_bot.data.provider import CsvPriceProvider, naive_utc
from reversion_bot.backtesting.engine import BacktestSimulator
from reversion_bot.backtesting.optimization import optimize_parameters, top_by
from reversion_bot.analytics.report import format_report
from reversion_bot.live.trader import LiveTrader
from reversion_bot.monitoring.sinks import CompositeMetricsSink, LoggingMetricsSink, TelegramMetricsSink
from reversion_bot.utils.telegram import send_telegram
from reversion_bot.utils.timeframes import cycle_interval_seconds

logger = logging.getLogger("reversion_bot")

OPTIMIZE_MA_PERIODS = [10, 15, 20, 25, 30]
OPTIMIZE_STD_DEVS = [Decimal("1.5"), Decimal("2.0"), Decimal("2.5"), Decimal("3.0")]


def _parse_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return naive_utc(datetime.fromisoformat(value))
    except ValueError:
        raise ConfigError(f"Invalid date: {value!r} (expected ISO format, e.g. 2024-01-01)")


def build_strategy(config: Config, ma_period: Optional[int] = None, std_dev: Optional[Decimal] = None) -> SignalEngine:
    return SignalEngine(
        ma_period=ma_period or config.ma_period,
        std_dev_multiplier=std_dev or config.std_dev_multiplier,
        entry_threshold=config.entry_threshold,
        exit_threshold=config.exit_threshold,
        stop_loss_percent=config.stop_loss_percent,
        take_profit_percent=config.take_profit_percent,
        min_volume=config.min_volume,
        max_position_size=config.max_position_size,
        risk_per_trade=config.risk_per_trade,
    )


def build_risk_manager(config: Config) -> RiskManager:
    return RiskManager(
        max_position_size=config.max_position_size,
        max_open_positions=config.max_open_positions,
        risk_per_trade=config.risk_per_trade,
        max_daily_loss=config.max_daily_loss,
        max_drawdown=config.max_drawdown,
    )


def build_simulator(config: Config, ma_period: Optional[int] = None, std_dev: Optional[Decimal] = None) -> BacktestSimulator:
    return BacktestSimulator(
        strategy=build_strategy(config, ma_period, std_dev),
        risk_manager=build_risk_manager(config),
        initial_balance=config.initial_balance,
        execution=PaperExecutionSink(config.fee_bps, config.slippage_bps, id_prefix="bt"),
        fee_bps=config.fee_bps,
        lot_step=config.lot_step,
    )


def _setup(config_path: Optional[Path]) -> Config:
    config = load_config(config_path, ROOT)
    setup_logging(config.log_level, config.log_dir, config.log_file, config.json_logs)
    return config


def _provider(config: Config, data: Optional[Path]) -> CsvPriceProvider:
    path = data or (Path(config.data_file) if config.data_file else None)
    if path is None:
        raise NoHistoricalDataError("No price data file given. Pass --data or set DATA_FILE")
    if not path.exists():
        raise NoHistoricalDataError(f"Price data file not found: {path}")
    return CsvPriceProvider(path)


def run_backtest(args: argparse.Namespace) -> int:
    """Run one backtest over the configured (or CLI) date range and save the result."""
    config = _setup(args.config)
    provider = _provider(config, args.data)
    start = _parse_date(args.start or config.backtest_start)
    end = _parse_date(args.end or config.backtest_end)
    simulator = build_simulator(config)
    result = simulator.run(provider, start=start, end=end)
    print(format_report(result))
    path = result.save_json(args.output_dir or config.output_dir)
    print(f"\nResults saved to {path}")
    return 0


def run_optimize(args: argparse.Namespace) -> int:
    """Grid-search ma_period x std_dev_multiplier and print the leaders."""
    config = _setup(args.config)
    bars = _provider(config, args.data).get_price_history()
    start = _parse_date(args.start or config.backtest_start)
    end = _parse_date(args.end or config.backtest_end)
    bars = [b for b in bars if (start is None or b.timestamp >= start) and (end is None or b.timestamp <= end)]
    if not bars:
        raise NoHistoricalDataError("No historical data available for the specified period")
    frame = optimize_parameters(
        bars,
        OPTIMIZE_MA_PERIODS,
        OPTIMIZE_STD_DEVS,
        lambda period, mult: build_simulator(config, period, mult),
    )
    print("\n--- Top 5 by Total Return ---")
    print(top_by(frame, "total_return_pct").to_string(index=False))
    print("\n--- Top 5 by Sharpe Ratio ---")
    print(top_by(frame, "sharpe_ratio").to_string(index=False))
    print("\n--- Top 5 by Lowest Drawdown ---")
    print(top_by(frame, "max_drawdown", ascending=True).to_string(index=False))
    output_dir = Path(args.output_dir or config.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"optimization-{datetime.now():%Y-%m-%dT%H-%M-%S}.csv"
    frame.to_csv(path, index=False)
    print(f"\nResults saved to {path}")
    return 0


def run_live(args: argparse.Namespace) -> int:
    """Run the live cycle loop. Paper fills; simulation only unless TRADING_ENABLED."""
    config = _setup(args.config)
    provider = _provider(config, args.data)
    sinks = [LoggingMetricsSink()]
    if config.telegram_bot_token and config.telegram_chat_id:
        sinks.append(TelegramMetricsSink(config.telegram_bot_token, config.telegram_chat_id))
    trader = LiveTrader(
        provider=provider,
        strategy=build_strategy(config),
        risk_manager=build_risk_manager(config),
        execution=PaperExecutionSink(config.fee_bps, config.slippage_bps),
        metrics=CompositeMetricsSink(*sinks),
        balance=config.paper_balance,
        trading_enabled=config.trading_enabled,
        dedup_seconds=config.signal_dedup_seconds,
        fee_bps=config.fee_bps,
        lot_step=config.lot_step,
    )
    interval = cycle_interval_seconds(config.timeframe)
    logger.info(
        "Mean reversion bot starting | timeframe=%s interval=%ds trading_enabled=%s",
        config.timeframe, interval, config.trading_enabled,
    )
    send_telegram(
        f"Mean reversion bot starting | timeframe={config.timeframe} | trading_enabled={config.trading_enabled}",
        config.telegram_bot_token,
        config.telegram_chat_id,
    )
    trader.run_forever(interval, max_cycles=args.cycles)
    send_telegram("Mean reversion bot stopped.", config.telegram_bot_token, config.telegram_chat_id)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Mean Reversion Bot CLI")
    parser.add_argument("mode", choices=["backtest", "live", "optimize"], help="Run backtest, live or optimize")
    parser.add_argument("--config", type=Path, default=None, help="Path to config.yaml")
    parser.add_argument("--data", type=Path, default=None, help="OHLCV CSV file (overrides DATA_FILE)")
    parser.add_argument("--start", default=None, help="Backtest start date (ISO)")
    parser.add_argument("--end", default=None, help="Backtest end date (ISO)")
    parser.add_argument("--output-dir", type=Path, default=None, help="Directory for result files")
    parser.add_argument("--cycles", type=int, default=None, help="Stop live mode after N cycles")
    args = parser.parse_args(argv)
    runners = {"backtest": run_backtest, "live": run_live, "optimize": run_optimize}
    try:
        return runners[args.mode](args)
    except ConfigError as e:
        print(str(e), file=sys.stderr)
        return 1
    except NoHistoricalDataError as e:
        logger.error("%s", e)
        print(str(e), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
