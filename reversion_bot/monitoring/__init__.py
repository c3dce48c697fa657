"""Monitoring: metrics sinks."""

from reversion_bot.monitoring.sinks import (
    MetricsSink,
    LoggingMetricsSink,
    TelegramMetricsSink,
    CompositeMetricsSink,
    emit,
)

__all__ = ["MetricsSink", "LoggingMetricsSink", "TelegramMetricsSink", "CompositeMetricsSink", "emit"]
