from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from dataclasses import dataclass

from django.conf import settings

logger = logging.getLogger(__name__)


class TelegramNotConfiguredError(Exception):
    """Raised when the admin chat channel is missing a token or chat id."""


@dataclass
class TelegramConfig:
    bot_token: str = ""
    chat_id: str = ""
    timeout: float = 5.0


class TelegramClient:
    """Minimal Telegram Bot API client posting to one admin chat."""

    api_base = "https://api.telegram.org"

    def __init__(self, cfg: TelegramConfig):
        if not (cfg.bot_token and cfg.chat_id):
            msg = "TELEGRAM_BOT_TOKEN or TELEGRAM_CHAT_ID missing"
            raise TelegramNotConfiguredError(msg)
        self.cfg = cfg

    def send_message(self, text: str) -> bool:
        url = f"{self.api_base}/bot{self.cfg.bot_token}/sendMessage"
        payload = {"chat_id": self.cfg.chat_id, "text": text, "parse_mode": "HTML"}
        req = urllib.request.Request(  # noqa: S310 - external URL by config
            url,
            data=json.dumps(payload).encode("utf-8"),
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        try:
            with urllib.request.urlopen(req, timeout=self.cfg.timeout) as resp:  # noqa: S310 - external URL by config
                obj = json.loads(resp.read().decode("utf-8"))
        except urllib.error.HTTPError as e:  # pragma: no cover - network
            logger.warning("Telegram HTTPError: %s", e.read().decode("utf-8", "ignore"))
            return False
        except (urllib.error.URLError, TimeoutError, ValueError) as e:
            logger.warning("Telegram request failed: %s", e)
            return False
        return bool(obj.get("ok"))


def get_telegram_client_from_settings() -> TelegramClient | None:
    """Return a configured client, or None when the channel is disabled."""

    cfg = TelegramConfig(
        bot_token=getattr(settings, "TELEGRAM_BOT_TOKEN", ""),
        chat_id=str(getattr(settings, "TELEGRAM_CHAT_ID", "")),
        timeout=float(getattr(settings, "TELEGRAM_TIMEOUT", 5.0)),
    )
    try:
        return TelegramClient(cfg)
    except TelegramNotConfiguredError:
        logger.info("Telegram channel not configured; skipping admin message")
        return None
