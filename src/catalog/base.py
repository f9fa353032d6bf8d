from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


class FetchFailed(Exception):
    """The upstream catalog could not be fetched or decoded."""


@dataclass(frozen=True)
class FreePromotion:
    id: str
    title: str
    url: str
    end_date: Optional[datetime] = None
