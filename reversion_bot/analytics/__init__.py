"""Analytics: per-trade performance metrics and text reports."""

from reversion_bot.analytics.metrics import (
    PerformanceMetrics,
    compute_metrics,
    sharpe_ratio,
    max_drawdown,
    win_rate,
    profit_factor,
    population_std,
)
from reversion_bot.analytics.report import format_report

__all__ = [
    "PerformanceMetrics",
    "compute_metrics",
    "sharpe_ratio",
    "max_drawdown",
    "win_rate",
    "profit_factor",
    "population_std",
    "format_report",
]
