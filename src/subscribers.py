from __future__ import annotations

from typing import Dict, List, Optional

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from src.models.subscriber import Subscriber


class SubscriberDirectory:
    """Read and maintain the subscriber list.

    The pipeline only calls list_subscribed(); the rest backs the CLI.
    """

    def __init__(self, session: Session):
        self.session = session

    def list_subscribed(self) -> List[Subscriber]:
        stmt = (
            select(Subscriber)
            .where(Subscriber.subscribed.is_(True))
            .order_by(Subscriber.id)
        )
        return list(self.session.scalars(stmt))

    def get(self, chat_id: int) -> Optional[Subscriber]:
        return self.session.query(Subscriber).filter_by(chat_id=chat_id).first()

    def subscribe(
        self,
        chat_id: int,
        username: Optional[str] = None,
        first_name: Optional[str] = None,
    ) -> Subscriber:
        """Create or reactivate a subscriber."""
        subscriber = self.get(chat_id)
        if subscriber is None:
            subscriber = Subscriber(chat_id=chat_id)
            self.session.add(subscriber)
        if username is not None:
            subscriber.username = username
        if first_name is not None:
            subscriber.first_name = first_name
        subscriber.subscribed = True
        self.session.commit()
        logger.info(f"Subscribed {subscriber.display_name} (chat {chat_id})")
        return subscriber

    def unsubscribe(self, chat_id: int) -> bool:
        subscriber = self.get(chat_id)
        if subscriber is None:
            logger.warning(f"Unsubscribe for unknown chat {chat_id}")
            return False
        subscriber.subscribed = False
        self.session.commit()
        logger.info(f"Unsubscribed {subscriber.display_name} (chat {chat_id})")
        return True

    def counts(self) -> Dict[str, int]:
        total = self.session.scalar(select(func.count(Subscriber.id))) or 0
        subscribed = (
            self.session.scalar(
                select(func.count(Subscriber.id)).where(Subscriber.subscribed.is_(True))
            )
            or 0
        )
        return {
            "total": total,
            "subscribed": subscribed,
            "unsubscribed": total - subscribed,
        }
