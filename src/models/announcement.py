from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from src.db.database import Base


class Announcement(Base):
    """A promotion that has already been announced to subscribers.

    Keyed by the upstream promotion id; one row per id, never deleted.
    """

    __tablename__ = "announced_games"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    announced_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )
    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime)

    def __repr__(self) -> str:
        return f"<Announcement {self.id}:{self.title}>"
