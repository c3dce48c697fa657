"""
Per-trade performance metrics over closed positions, in Decimal.
Percent-valued outputs say so in their names or docstrings.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Sequence

from reversion_bot.core.types import Position, PositionStatus

ZERO = Decimal(0)
HUNDRED = Decimal(100)


@dataclass(frozen=True)
class PerformanceMetrics:
    """Aggregate statistics over closed positions."""
    total_trades: int
    winning_trades: int
    losing_trades: int
    win_rate: Decimal          # percent
    average_win: Decimal
    average_loss: Decimal      # absolute value
    profit_factor: Decimal     # average_win / average_loss
    sharpe_ratio: Decimal
    expectancy: Decimal        # average pnl per trade


def _mean(values: Sequence[Decimal]) -> Decimal:
    return sum(values, ZERO) / len(values) if values else ZERO


def population_std(values: Sequence[Decimal]) -> Decimal:
    if not values:
        return ZERO
    mean = _mean(values)
    return (sum(((v - mean) ** 2 for v in values), ZERO) / len(values)).sqrt()


def win_rate(pnls: Sequence[Decimal]) -> Decimal:
    """Percent of trades with positive pnl."""
    if not pnls:
        return ZERO
    return Decimal(sum(1 for p in pnls if p > 0)) / len(pnls) * HUNDRED


def profit_factor(average_win: Decimal, average_loss: Decimal) -> Decimal:
    """Average win over average loss. 0 when there are no losers."""
    if average_loss <= 0:
        return ZERO
    return average_win / average_loss


def sharpe_ratio(returns: Sequence[Decimal]) -> Decimal:
    """
    Simplified per-trade Sharpe: mean / population std of trade returns,
    no annualization or risk-free rate. 0 with fewer than two returns or zero std.
    """
    if len(returns) < 2:
        return ZERO
    std = population_std(returns)
    if std == 0:
        return ZERO
    return _mean(returns) / std


def max_drawdown(equity_curve: Iterable[Decimal]) -> Decimal:
    """Largest peak-to-trough decline as a fraction (0.15 = 15%)."""
    peak = ZERO
    worst = ZERO
    for value in equity_curve:
        if value > peak:
            peak = value
        if peak > 0:
            worst = max(worst, (peak - value) / peak)
    return worst


def compute_metrics(positions: Iterable[Position]) -> PerformanceMetrics:
    """Statistics over CLOSED positions; anything else is ignored."""
    closed: List[Position] = [
        p for p in positions if p.status == PositionStatus.CLOSED and p.pnl is not None
    ]
    pnls = [p.pnl for p in closed]
    wins = [p for p in pnls if p > 0]
    losses = [-p for p in pnls if p < 0]
    avg_win = _mean(wins)
    avg_loss = _mean(losses)
    returns = [p.pnl_percent / HUNDRED for p in closed if p.pnl_percent is not None]
    return PerformanceMetrics(
        total_trades=len(closed),
        winning_trades=len(wins),
        losing_trades=len(losses),
        win_rate=win_rate(pnls),
        average_win=avg_win,
        average_loss=avg_loss,
        profit_factor=profit_factor(avg_win, avg_loss),
        sharpe_ratio=sharpe_ratio(returns),
        expectancy=_mean(pnls),
    )
