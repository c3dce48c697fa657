"""Plain-text backtest report."""

from __future__ import annotations
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from reversion_bot.backtesting.engine import BacktestResult


def format_report(result: "BacktestResult", title: str = "Mean Reversion") -> str:
    if result.start_date and result.end_date:
        days = (result.end_date - result.start_date).total_seconds() / 86400
        period = f"{result.start_date:%Y-%m-%d} to {result.end_date:%Y-%m-%d} ({days:.0f} days)"
    else:
        period = "n/a"
    closed = [p for p in result.positions if p.pnl is not None and p.exit_time is not None]
    best = max((p.pnl for p in closed), default=0)
    worst = min((p.pnl for p in closed), default=0)
    lines = [
        "=================================================",
        "           BACKTEST RESULTS REPORT",
        "=================================================",
        f"Period:   {period}",
        f"Strategy: {title}",
        "",
        "PERFORMANCE SUMMARY:",
        f"  Initial Balance:  {result.initial_balance:.2f}",
        f"  Final Balance:    {result.final_balance:.2f}",
        f"  Total Return:     {result.total_return:.2f}",
        f"  Return %:         {result.total_return_percent:.2f}%",
        f"  Max Drawdown:     {result.max_drawdown * 100:.2f}%",
        f"  Sharpe Ratio:     {result.sharpe_ratio:.2f}",
        f"  Fees Paid:        {result.total_fees:.2f}",
        "",
        "TRADING STATISTICS:",
        f"  Total Trades:     {result.total_trades}",
        f"  Winning Trades:   {result.winning_trades}",
        f"  Losing Trades:    {result.losing_trades}",
        f"  Win Rate:         {result.win_rate:.1f}%",
        f"  Average Win:      {result.average_win:.2f}",
        f"  Average Loss:     {result.average_loss:.2f}",
        f"  Profit Factor:    {result.profit_factor:.2f}",
        f"  Expectancy:       {result.expectancy:.2f}",
        f"  Best Trade:       {best:.2f}",
        f"  Worst Trade:      {worst:.2f}",
        "=================================================",
    ]
    return "\n".join(lines)
