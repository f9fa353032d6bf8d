from datetime import datetime

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from src.db.database import Base, get_db
from src.main import app
from src.models.announcement import Announcement
from src.models.subscriber import Subscriber

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def session_factory():
    engine = create_async_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield factory
    app.dependency_overrides.clear()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.mark.asyncio
async def test_health():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        resp = await ac.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_announcements_empty(session_factory):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        resp = await ac.get("/api/announcements")
    assert resp.status_code == 200
    assert resp.json() == {"items": []}


@pytest.mark.asyncio
async def test_announcements_listed(session_factory):
    async with session_factory() as session:
        session.add(
            Announcement(
                id="A",
                title="Game A",
                announced_at=datetime(2024, 5, 9, 18, 0),
                end_date=datetime(2024, 5, 16, 15, 0),
            )
        )
        session.add(
            Announcement(id="B", title="Game B", announced_at=datetime(2024, 5, 16, 18, 0))
        )
        await session.commit()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        resp = await ac.get("/api/announcements")
    items = resp.json()["items"]
    assert [item["id"] for item in items] == ["B", "A"]
    assert items[0]["end_date"] is None
    assert items[1]["end_date"] == "2024-05-16T15:00:00"


@pytest.mark.asyncio
async def test_subscriber_stats(session_factory):
    async with session_factory() as session:
        session.add_all(
            [
                Subscriber(chat_id=1, username="alice"),
                Subscriber(chat_id=2, username="bob"),
                Subscriber(chat_id=3, username="carol", subscribed=False),
            ]
        )
        await session.commit()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        resp = await ac.get("/api/subscribers/stats")
    assert resp.status_code == 200
    assert resp.json() == {"total": 3, "subscribed": 2, "unsubscribed": 1}


@pytest.mark.asyncio
async def test_admin_status_without_scheduler():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        resp = await ac.get("/api/admin/status")
    assert resp.status_code == 200
    data = resp.json()
    assert data["scheduler_running"] is False
    assert data["jobs"] == []
    assert data["last_result"] is None
