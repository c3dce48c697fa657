"""Exception taxonomy. Insufficient data and risk rejections are not exceptions."""


class ReversionBotError(Exception):
    """Base class for all errors raised by the engine."""


class ConfigError(ReversionBotError, ValueError):
    """Invalid configuration. Fatal at startup."""

    def __init__(self, problems):
        if isinstance(problems, str):
            problems = [problems]
        self.problems = list(problems)
        super().__init__("Configuration validation failed:\n" + "\n".join(self.problems))


class NoHistoricalDataError(ReversionBotError, RuntimeError):
    """No price bars available for the requested backtest window."""


class PositionStateError(ReversionBotError, ValueError):
    """Illegal position lifecycle transition."""
