"""Execution: sink abstraction and paper fills."""

from reversion_bot.execution.base import ExecutionSink, exit_signal, trade_side
from reversion_bot.execution.paper import PaperExecutionSink

__all__ = ["ExecutionSink", "exit_signal", "trade_side", "PaperExecutionSink"]
