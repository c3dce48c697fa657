"""Live trading: serial cycle driver."""

from reversion_bot.live.trader import LiveTrader, CycleOutcome

__all__ = ["LiveTrader", "CycleOutcome"]
