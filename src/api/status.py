from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.database import get_db
from src.models.announcement import Announcement
from src.models.subscriber import Subscriber

router = APIRouter(prefix="/api", tags=["status"])


class AnnouncementResponse(BaseModel):
    id: str
    title: str
    announced_at: str
    end_date: Optional[str] = None


class SubscriberStatsResponse(BaseModel):
    total: int
    subscribed: int
    unsubscribed: int


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@router.get("/announcements")
async def list_announcements(
    limit: int = Query(default=50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Announcement).order_by(Announcement.announced_at.desc()).limit(limit)
    )
    records = result.scalars().all()
    items: List[AnnouncementResponse] = [
        AnnouncementResponse(
            id=record.id,
            title=record.title,
            announced_at=_iso(record.announced_at),
            end_date=_iso(record.end_date),
        )
        for record in records
    ]
    return {"items": items}


@router.get("/subscribers/stats", response_model=SubscriberStatsResponse)
async def subscriber_stats(db: AsyncSession = Depends(get_db)):
    total = await db.scalar(select(func.count(Subscriber.id))) or 0
    subscribed = (
        await db.scalar(
            select(func.count(Subscriber.id)).where(Subscriber.subscribed.is_(True))
        )
        or 0
    )
    return SubscriberStatsResponse(
        total=total, subscribed=subscribed, unsubscribed=total - subscribed
    )
