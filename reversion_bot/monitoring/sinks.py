"""
Metrics sinks: fire-and-forget observers for signals, trades, and risk metrics.
Sink failures must never change trading control flow; use emit().
"""

from __future__ import annotations
import logging
from typing import Any, Callable

from reversion_bot.core.types import Trade, TradingSignal
from reversion_bot.utils.telegram import send_telegram

logger = logging.getLogger("reversion_bot.monitoring")
events = logging.getLogger("reversion_bot.events")


class MetricsSink:
    """Base sink; every hook is a no-op."""

    def on_signal(self, signal: TradingSignal) -> None:
        pass

    def on_trade(self, trade: Trade) -> None:
        pass

    def on_risk_metrics(self, metrics: dict) -> None:
        pass


def emit(hook: Callable[..., Any], *args: Any) -> None:
    """Call a sink hook, logging and dropping any error it raises."""
    try:
        hook(*args)
    except Exception:
        logger.exception("Metrics sink %s failed", getattr(hook, "__qualname__", hook))


class LoggingMetricsSink(MetricsSink):
    """Structured event lines on the reversion_bot.events logger."""

    def on_signal(self, signal: TradingSignal) -> None:
        events.info(
            "signal %s strength=%.2f price=%s reason=%s",
            signal.type.value, signal.strength, signal.price, signal.reason,
            extra={"event": {
                "kind": "signal",
                "type": signal.type.value,
                "strength": signal.strength,
                "price": str(signal.price),
                "z_score": str(signal.indicators.z_score),
            }},
        )

    def on_trade(self, trade: Trade) -> None:
        level = logging.INFO if trade.ok else logging.WARNING
        events.log(
            level,
            "trade %s %s %s @ %s fee=%s status=%s%s",
            trade.id, trade.side.value, trade.size, trade.price, trade.fee, trade.status.value,
            f" error={trade.error}" if trade.error else "",
            extra={"event": {
                "kind": "trade",
                "id": trade.id,
                "side": trade.side.value,
                "size": str(trade.size),
                "price": str(trade.price),
                "status": trade.status.value,
            }},
        )

    def on_risk_metrics(self, metrics: dict) -> None:
        events.info(
            "risk daily_loss=%s max_drawdown=%s peak=%s",
            metrics.get("daily_loss"), metrics.get("max_drawdown"), metrics.get("peak_balance"),
            extra={"event": {"kind": "risk", **metrics}},
        )


class TelegramMetricsSink(MetricsSink):
    """Trade fills and risk summaries to a Telegram chat."""

    def __init__(self, bot_token: str = "", chat_id: str = "", symbol: str = ""):
        self._bot_token = bot_token
        self._chat_id = chat_id
        self.symbol = symbol

    def on_trade(self, trade: Trade) -> None:
        text = f"{trade.side.value} {self.symbol} size={trade.size:.4f} price={trade.price:.4f} status={trade.status.value}"
        if trade.error:
            text += f" error={trade.error}"
        send_telegram(text, self._bot_token, self._chat_id)

    def on_risk_metrics(self, metrics: dict) -> None:
        text = (
            f"Risk | daily loss {metrics.get('daily_loss')} | "
            f"max drawdown {metrics.get('max_drawdown')} | peak {metrics.get('peak_balance')}"
        )
        send_telegram(text, self._bot_token, self._chat_id)


class CompositeMetricsSink(MetricsSink):
    """Fans out to several sinks; one failing sink does not stop the others."""

    def __init__(self, *sinks: MetricsSink):
        self.sinks = list(sinks)

    def on_signal(self, signal: TradingSignal) -> None:
        for sink in self.sinks:
            emit(sink.on_signal, signal)

    def on_trade(self, trade: Trade) -> None:
        for sink in self.sinks:
            emit(sink.on_trade, trade)

    def on_risk_metrics(self, metrics: dict) -> None:
        for sink in self.sinks:
            emit(sink.on_risk_metrics, metrics)
