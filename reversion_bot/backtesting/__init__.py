"""Backtesting: simulated ledger, bar-by-bar simulator, parameter sweep."""

from reversion_bot.backtesting.ledger import Ledger
from reversion_bot.backtesting.engine import BacktestSimulator, BacktestResult
from reversion_bot.backtesting.optimization import optimize_parameters, top_by

__all__ = ["Ledger", "BacktestSimulator", "BacktestResult", "optimize_parameters", "top_by"]
