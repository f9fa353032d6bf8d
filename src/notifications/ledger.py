from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.catalog.base import FreePromotion
from src.models.announcement import Announcement


class LedgerError(Exception):
    """The announcement ledger could not be read or written."""


def _to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class AnnouncementLedger:
    """Durable record of promotion ids already announced to subscribers.

    Storage errors are raised as LedgerError instead of being read as
    "not announced": guessing wrong here means duplicate broadcasts.
    """

    def __init__(self, session: Session):
        self.session = session

    def is_announced(self, promotion_id: str) -> bool:
        try:
            return self.session.get(Announcement, promotion_id) is not None
        except SQLAlchemyError as e:
            raise LedgerError(f"Cannot read ledger for {promotion_id}: {e}") from e

    def record_announced(self, promotion: FreePromotion) -> Announcement:
        """Insert or update the record for this promotion id."""
        try:
            record = self.session.get(Announcement, promotion.id)
            if record is None:
                record = Announcement(id=promotion.id)
                self.session.add(record)
            record.title = promotion.title
            record.end_date = _to_naive_utc(promotion.end_date)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise LedgerError(f"Cannot record {promotion.id} in ledger: {e}") from e

        logger.debug(f"Recorded announcement for {promotion.id} ({promotion.title})")
        return record

    def list_announced(self, limit: Optional[int] = None) -> List[Announcement]:
        stmt = select(Announcement).order_by(Announcement.announced_at.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        try:
            return list(self.session.scalars(stmt))
        except SQLAlchemyError as e:
            raise LedgerError(f"Cannot list ledger: {e}") from e
