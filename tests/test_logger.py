"""Unit tests for core.logger."""

import json
import logging

from reversion_bot.core.logger import setup_logging


def _teardown(logger):
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


def test_json_lines_to_file(tmp_path):
    logger = setup_logging("DEBUG", tmp_path / "logs", "bot.log", json_logs=True)
    try:
        logging.getLogger("reversion_bot.events").info(
            "trade filled", extra={"event": {"kind": "trade", "id": "bt-000001"}},
        )
    finally:
        _teardown(logger)
    line = (tmp_path / "logs" / "bot.log").read_text(encoding="utf-8").strip().splitlines()[-1]
    payload = json.loads(line)
    assert payload["message"] == "trade filled"
    assert payload["logger"] == "reversion_bot.events"
    assert payload["kind"] == "trade"
    assert payload["id"] == "bt-000001"


def test_text_format_and_level(tmp_path):
    logger = setup_logging("warning", tmp_path, "bot.log")
    try:
        assert logger.level == logging.WARNING
        logging.getLogger("reversion_bot.risk").warning("Significant drawdown")
    finally:
        _teardown(logger)
    text = (tmp_path / "bot.log").read_text(encoding="utf-8")
    assert "| WARNING  | reversion_bot.risk | Significant drawdown" in text
