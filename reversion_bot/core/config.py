"""
Load configuration from config.yaml and .env. Env values override the yaml file.
"""

from __future__ import annotations
import os
from dataclasses import dataclass, field, fields
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from reversion_bot.core.errors import ConfigError


def _env_path(project_root: Optional[Path] = None) -> Path:
    root = project_root or Path(__file__).resolve().parents[2]
    return root / ".env"


def load_dotenv_if_exists(project_root: Optional[Path] = None) -> None:
    """Load .env from project root if present."""
    path = _env_path(project_root)
    if path.exists():
        load_dotenv(path)


def _decimal(value: Any, name: str) -> Decimal:
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ConfigError(f"{name} is not a number: {value!r}")
    if not number.is_finite():
        raise ConfigError(f"{name} must be a finite number: {value!r}")
    return number


def load_config(config_path: Optional[Path] = None, project_root: Optional[Path] = None) -> "Config":
    """Load config.yaml and overlay with env. Returns a validated Config."""
    load_dotenv_if_exists(project_root)
    root = project_root or Path(__file__).resolve().parents[2]
    path = config_path or root / "config.yaml"
    data: dict[str, Any] = {}
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    def env(key: str, default: Any = "") -> str:
        return os.getenv(key, str(default) if default is not None else "").strip()

    def env_bool(key: str, default: bool = False) -> bool:
        return os.getenv(key, str(default)).lower() in ("true", "1", "yes")

    def env_int(key: str, default: int = 0) -> int:
        raw = os.getenv(key, str(default))
        try:
            return int(raw)
        except ValueError:
            raise ConfigError(f"{key} is not an integer: {raw!r}")

    def env_decimal(key: str, default: Any) -> Decimal:
        return _decimal(os.getenv(key, str(default)), key)

    def env_optional(key: str, default: Optional[str]) -> Optional[str]:
        value = os.getenv(key)
        if value is not None:
            return value.strip() or None
        return str(default) if default is not None else None

    strategy = data.get("strategy", {}) or {}
    risk = data.get("risk", {}) or {}
    execution = data.get("execution", {}) or {}
    backtest = data.get("backtest", {}) or {}
    live = data.get("live", {}) or {}
    logging_cfg = data.get("logging", {}) or {}
    telegram = data.get("telegram", {}) or {}

    max_position_size = env_decimal("MAX_POSITION_SIZE", risk.get("max_position_size", 1000))
    # Daily loss cap defaults to 10% of the max position size
    daily_default = risk.get("max_daily_loss")
    if daily_default is None:
        daily_default = max_position_size * Decimal("0.1")

    return Config(
        # Strategy
        ma_period=env_int("MA_PERIOD", strategy.get("ma_period", 20)),
        std_dev_multiplier=env_decimal("STD_DEV_MULTIPLIER", strategy.get("std_dev_multiplier", 2)),
        entry_threshold=env_decimal("ENTRY_THRESHOLD", strategy.get("entry_threshold", "0.5")),
        exit_threshold=env_decimal("EXIT_THRESHOLD", strategy.get("exit_threshold", "0.1")),
        stop_loss_percent=env_decimal("STOP_LOSS_PERCENT", strategy.get("stop_loss_percent", "0.05")),
        take_profit_percent=env_decimal("TAKE_PROFIT_PERCENT", strategy.get("take_profit_percent", "0.10")),
        min_volume=env_decimal("MIN_VOLUME_USD", strategy.get("min_volume", 10000)),
        timeframe=env("TIMEFRAME", strategy.get("timeframe", "15m")),
        signal_dedup_seconds=env_int("SIGNAL_DEDUP_SECONDS", strategy.get("signal_dedup_seconds", 300)),
        # Risk
        max_position_size=max_position_size,
        risk_per_trade=env_decimal("RISK_PER_TRADE", risk.get("risk_per_trade", "0.02")),
        max_open_positions=env_int("MAX_OPEN_POSITIONS", risk.get("max_open_positions", 3)),
        max_daily_loss=env_decimal("MAX_DAILY_LOSS", daily_default),
        max_drawdown=env_decimal("MAX_DRAWDOWN", risk.get("max_drawdown", "0.20")),
        # Execution
        fee_bps=env_decimal("FEE_BPS", execution.get("fee_bps", 25)),
        slippage_bps=env_decimal("SLIPPAGE_BPS", execution.get("slippage_bps", 0)),
        lot_step=env_decimal("LOT_STEP", execution.get("lot_step", "0.00000001")),
        # Backtest
        initial_balance=env_decimal("INITIAL_BALANCE", backtest.get("initial_balance", 10000)),
        backtest_start=env_optional("BACKTEST_START", backtest.get("start_date")),
        backtest_end=env_optional("BACKTEST_END", backtest.get("end_date")),
        data_file=env_optional("DATA_FILE", backtest.get("data_file")),
        output_dir=Path(env("OUTPUT_DIR", backtest.get("output_dir", "backtest-results"))),
        # Live
        trading_enabled=env_bool("TRADING_ENABLED", live.get("trading_enabled", False)),
        paper_balance=env_decimal("PAPER_BALANCE", live.get("paper_balance", 1000)),
        # Telegram (token only ever from env in practice; never logged)
        telegram_bot_token=env("TELEGRAM_BOT_TOKEN", telegram.get("bot_token", "")),
        telegram_chat_id=env("TELEGRAM_CHAT_ID", telegram.get("chat_id", "")),
        # Logging
        log_level=env("LOG_LEVEL", logging_cfg.get("level", "INFO")).upper(),
        log_dir=Path(logging_cfg.get("log_dir", "logs")),
        log_file=logging_cfg.get("log_file", "reversion_bot.log"),
        json_logs=env_bool("JSON_LOGS", logging_cfg.get("json", False)),
    )


@dataclass(frozen=True)
class Config:
    """Unified configuration. Immutable; validated on construction."""

    ma_period: int = 20
    std_dev_multiplier: Decimal = Decimal(2)
    entry_threshold: Decimal = Decimal("0.5")
    exit_threshold: Decimal = Decimal("0.1")
    stop_loss_percent: Decimal = Decimal("0.05")
    take_profit_percent: Decimal = Decimal("0.10")
    min_volume: Decimal = Decimal(10000)
    timeframe: str = "15m"
    signal_dedup_seconds: int = 300
    max_position_size: Decimal = Decimal(1000)
    risk_per_trade: Decimal = Decimal("0.02")
    max_open_positions: int = 3
    max_daily_loss: Decimal = Decimal(100)
    max_drawdown: Decimal = Decimal("0.20")
    fee_bps: Decimal = Decimal(25)
    slippage_bps: Decimal = Decimal(0)
    lot_step: Decimal = Decimal("0.00000001")
    initial_balance: Decimal = Decimal(10000)
    backtest_start: Optional[str] = None
    backtest_end: Optional[str] = None
    data_file: Optional[str] = None
    output_dir: Path = Path("backtest-results")
    trading_enabled: bool = False
    paper_balance: Decimal = Decimal(1000)
    telegram_bot_token: str = field(default="", repr=False)
    telegram_chat_id: str = field(default="", repr=False)
    log_level: str = "INFO"
    log_dir: Path = Path("logs")
    log_file: str = "reversion_bot.log"
    json_logs: bool = False

    def __post_init__(self) -> None:
        problems = self.validate()
        if problems:
            raise ConfigError(problems)

    def validate(self) -> list[str]:
        """Return every validation problem (empty list when valid)."""
        errors: list[str] = []
        not_finite = [
            f.name.upper() for f in fields(self)
            if isinstance(getattr(self, f.name), Decimal) and not getattr(self, f.name).is_finite()
        ]
        if not_finite:
            # Ordering comparisons on NaN raise, so stop here
            return [f"{name} must be a finite number" for name in not_finite]
        if self.ma_period < 2:
            errors.append("MA_PERIOD must be at least 2")
        if self.std_dev_multiplier <= 0:
            errors.append("STD_DEV_MULTIPLIER must be positive")
        if self.entry_threshold < 0 or self.exit_threshold < 0:
            errors.append("ENTRY_THRESHOLD and EXIT_THRESHOLD must not be negative")
        if self.stop_loss_percent <= 0:
            errors.append("STOP_LOSS_PERCENT must be positive")
        if self.take_profit_percent <= 0:
            errors.append("TAKE_PROFIT_PERCENT must be positive")
        if self.risk_per_trade <= 0:
            errors.append("RISK_PER_TRADE must be positive")
        if self.risk_per_trade > Decimal("0.1"):
            errors.append("RISK_PER_TRADE should not exceed 10% (0.1)")
        if self.max_position_size <= 0:
            errors.append("MAX_POSITION_SIZE must be positive")
        if self.max_open_positions < 1:
            errors.append("MAX_OPEN_POSITIONS must be at least 1")
        if self.max_daily_loss < 0:
            errors.append("MAX_DAILY_LOSS must not be negative")
        if not (0 < self.max_drawdown <= 1):
            errors.append("MAX_DRAWDOWN must be in (0, 1]")
        if self.fee_bps < 0 or self.slippage_bps < 0:
            errors.append("FEE_BPS and SLIPPAGE_BPS must not be negative")
        if self.lot_step <= 0:
            errors.append("LOT_STEP must be positive")
        if self.initial_balance <= 0 or self.paper_balance <= 0:
            errors.append("INITIAL_BALANCE and PAPER_BALANCE must be positive")
        if self.signal_dedup_seconds < 0:
            errors.append("SIGNAL_DEDUP_SECONDS must not be negative")
        return errors
