from __future__ import annotations

import time
from typing import Callable, Dict, Sequence

from loguru import logger

from src.catalog.base import FreePromotion
from src.models.subscriber import Subscriber
from src.notifications.formatter import format_closing, format_intro, format_promotion
from src.notifications.telegram import TelegramSender


class DeliveryFailed(Exception):
    """A message could not be delivered to one recipient."""


class NotificationDispatcher:
    """Broadcasts newly free games to every subscriber, one at a time.

    Each recipient gets an intro, one message per game and a closing tip.
    Sends are paced with fixed sleeps to stay under Telegram's rate limits,
    and a failure for one recipient never stops the others. There is no
    retry: a recipient whose delivery fails misses that batch.
    """

    def __init__(
        self,
        sender: TelegramSender,
        message_delay: float = 0.5,
        recipient_delay: float = 1.0,
        enabled: bool = True,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.sender = sender
        self.message_delay = message_delay
        self.recipient_delay = recipient_delay
        self.enabled = enabled
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings) -> "NotificationDispatcher":
        return cls(
            TelegramSender(settings.telegram_bot_token),
            message_delay=settings.message_delay_seconds,
            recipient_delay=settings.recipient_delay_seconds,
            enabled=settings.notification_enabled,
        )

    def _send(self, chat_id: int, text: str) -> None:
        if not self.sender.send(chat_id, text):
            raise DeliveryFailed(f"send to chat {chat_id} failed")

    def send_free_games(self, chat_id: int, promotions: Sequence[FreePromotion]) -> None:
        """Deliver the full message sequence to one chat; raises on first failure."""
        self._send(chat_id, format_intro(promotions))

        for index, promotion in enumerate(promotions):
            self._send(chat_id, format_promotion(promotion))
            if index < len(promotions) - 1:
                self._sleep(self.message_delay)

        self._send(chat_id, format_closing())

    def broadcast(
        self,
        promotions: Sequence[FreePromotion],
        recipients: Sequence[Subscriber],
    ) -> Dict[int, bool]:
        """Deliver promotions to each recipient.

        Returns:
            Dict mapping each recipient's chat id to whether delivery succeeded.
        """
        if not self.enabled:
            logger.info("Notifications are disabled, skipping broadcast")
            return {}

        if not promotions:
            logger.debug("Nothing to broadcast")
            return {}

        results: Dict[int, bool] = {}
        for index, recipient in enumerate(recipients):
            if index > 0:
                self._sleep(self.recipient_delay)

            try:
                self.send_free_games(recipient.chat_id, promotions)
            except Exception as e:
                logger.error(
                    f"Error notifying {recipient.display_name} "
                    f"(chat {recipient.chat_id}): {e}"
                )
                results[recipient.chat_id] = False
                continue

            results[recipient.chat_id] = True
            logger.info(
                f"Notified {recipient.display_name} (chat {recipient.chat_id}) "
                f"of {len(promotions)} games"
            )

        delivered = sum(results.values())
        logger.info(f"Broadcast finished: {delivered}/{len(results)} recipients reached")
        return results
