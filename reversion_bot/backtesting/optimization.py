"""
Parameter sweep: one backtest per (ma_period, std_dev_multiplier) grid point,
collected into a DataFrame for ranking.
"""

from __future__ import annotations
import logging
from decimal import Decimal
from typing import Callable, Iterable, Sequence

import pandas as pd

from reversion_bot.backtesting.engine import BacktestSimulator
from reversion_bot.core.errors import ReversionBotError
from reversion_bot.core.types import PriceBar

logger = logging.getLogger("reversion_bot.backtest.optimization")

COLUMNS = [
    "ma_period",
    "std_dev_multiplier",
    "total_return_pct",
    "win_rate",
    "sharpe_ratio",
    "max_drawdown",
    "total_trades",
]

# Sentinel row values for a combination whose backtest failed
FAILED_ROW = {
    "total_return_pct": -999.0,
    "win_rate": 0.0,
    "sharpe_ratio": -999.0,
    "max_drawdown": 1.0,
    "total_trades": 0,
}


def optimize_parameters(
    bars: Sequence[PriceBar],
    ma_periods: Iterable[int],
    std_dev_multipliers: Iterable[Decimal],
    build_simulator: Callable[[int, Decimal], BacktestSimulator],
) -> pd.DataFrame:
    """
    Run the grid and return one row per combination, best total return first.
    build_simulator(ma_period, std_dev_multiplier) must return a fresh simulator.
    """
    grid = [(p, Decimal(m)) for p in ma_periods for m in std_dev_multipliers]
    rows = []
    for n, (period, mult) in enumerate(grid, start=1):
        logger.info("[%d/%d] Testing MA:%d StdDev:%sx", n, len(grid), period, mult)
        row = {"ma_period": period, "std_dev_multiplier": float(mult)}
        try:
            result = build_simulator(period, mult).run(bars)
        except (ReversionBotError, ValueError, ArithmeticError) as e:
            logger.warning("Combination MA:%d StdDev:%s failed: %s", period, mult, e)
            row.update(FAILED_ROW)
        else:
            row.update({
                "total_return_pct": float(result.total_return_percent),
                "win_rate": float(result.win_rate),
                "sharpe_ratio": float(result.sharpe_ratio),
                "max_drawdown": float(result.max_drawdown),
                "total_trades": result.total_trades,
            })
        rows.append(row)
    frame = pd.DataFrame(rows, columns=COLUMNS)
    return frame.sort_values("total_return_pct", ascending=False, kind="stable").reset_index(drop=True)


def top_by(frame: pd.DataFrame, column: str, n: int = 5, ascending: bool = False) -> pd.DataFrame:
    """Leaders by one column (e.g. 'sharpe_ratio'); ascending=True for 'max_drawdown'."""
    return frame.sort_values(column, ascending=ascending, kind="stable").head(n).reset_index(drop=True)
