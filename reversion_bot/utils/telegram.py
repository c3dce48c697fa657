"""Telegram notifications. Never log token or chat_id."""

from __future__ import annotations
import logging

import requests

logger = logging.getLogger("reversion_bot.utils.telegram")

TELEGRAM_API = "https://api.telegram.org"
MAX_MESSAGE_LEN = 4096


def send_telegram(text: str, bot_token: str = "", chat_id: str = "", timeout: float = 10.0) -> bool:
    """Send a message. Returns True on success, False when unconfigured or on any HTTP failure."""
    if not bot_token or not chat_id:
        logger.debug("Telegram not configured, skipping message (len=%d)", len(text))
        return False
    if len(text) > MAX_MESSAGE_LEN:
        text = text[: MAX_MESSAGE_LEN - 3] + "..."
    url = f"{TELEGRAM_API}/bot{bot_token}/sendMessage"
    try:
        r = requests.post(url, json={"chat_id": chat_id, "text": text}, timeout=timeout)
    except requests.RequestException as e:
        logger.warning("Telegram request failed: %s", type(e).__name__)
        return False
    if r.status_code != 200:
        logger.warning("Telegram send failed: %s %s", r.status_code, r.text[:200])
        return False
    return True
