from __future__ import annotations

from typing import Optional

from sqlalchemy import BigInteger, Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from src.db.database import Base
from src.models.base import TimestampMixin


class Subscriber(Base, TimestampMixin):
    __tablename__ = "subscribers"

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[Optional[str]] = mapped_column(String(100))
    first_name: Mapped[Optional[str]] = mapped_column(String(100))
    chat_id: Mapped[int] = mapped_column(BigInteger, unique=True, nullable=False)
    subscribed: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    @property
    def display_name(self) -> str:
        return self.username or self.first_name or f"user {self.chat_id}"

    def __repr__(self) -> str:
        state = "on" if self.subscribed else "off"
        return f"<Subscriber {self.display_name} chat={self.chat_id} {state}>"
