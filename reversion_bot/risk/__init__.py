"""Risk management: trade validation, daily loss, drawdown, exit rules."""

from reversion_bot.risk.manager import RiskManager, RiskResult, RiskState, ExitDecision

__all__ = ["RiskManager", "RiskResult", "RiskState", "ExitDecision"]
