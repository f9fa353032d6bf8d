from __future__ import annotations

import re
from typing import Union

import httpx
from loguru import logger

from src.config import get_settings

# Telegram MarkdownV2 requires escaping these characters
_TELEGRAM_ESCAPE_CHARS = re.compile(r"([_*\[\]()~`>#+\-=|{}.!\\])")

TELEGRAM_API_BASE = "https://api.telegram.org"
SEND_MESSAGE_TIMEOUT = 10  # seconds


def escape_markdown_v2(text: str) -> str:
    """Escape special characters for Telegram MarkdownV2 format."""
    return _TELEGRAM_ESCAPE_CHARS.sub(r"\\\1", text)


class TelegramSender:
    """Send messages to individual chats via the Telegram Bot API."""

    def __init__(self, bot_token: str = ""):
        self.bot_token = bot_token or get_settings().telegram_bot_token

    @property
    def is_configured(self) -> bool:
        return bool(self.bot_token)

    def send(self, chat_id: Union[int, str], text: str) -> bool:
        """Send a message to one chat.

        Args:
            chat_id: Destination chat.
            text: Message text in MarkdownV2 format.

        Returns:
            True if sent successfully, False otherwise.
        """
        url = f"{TELEGRAM_API_BASE}/bot{self.bot_token}/sendMessage"
        payload = {
            "chat_id": chat_id,
            "text": text,
            "parse_mode": "MarkdownV2",
            "link_preview_options": {"is_disabled": False},
        }

        try:
            with httpx.Client(timeout=SEND_MESSAGE_TIMEOUT) as client:
                response = client.post(url, json=payload)
                response.raise_for_status()

            logger.debug(f"Telegram message sent to chat {chat_id}")
            return True
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Telegram API error for chat {chat_id}: "
                f"{e.response.status_code} - {e.response.text}"
            )
            return False
        except httpx.RequestError as e:
            logger.error(f"Telegram request to chat {chat_id} failed: {e}")
            return False
