from __future__ import annotations

import threading
from datetime import datetime
from typing import Optional

from loguru import logger

from src.catalog.epic import EpicGamesFetcher
from src.config import Settings, get_settings
from src.db.database import get_sync_session
from src.notifications.dispatcher import NotificationDispatcher
from src.scheduler.pipeline import CycleResult, NotificationPipeline


def build_pipeline(settings: Optional[Settings] = None) -> NotificationPipeline:
    settings = settings or get_settings()
    dispatcher = NotificationDispatcher.from_settings(settings)
    if not dispatcher.sender.is_configured:
        logger.warning("TELEGRAM_BOT_TOKEN is not set, every delivery will fail")
    return NotificationPipeline(
        fetcher=EpicGamesFetcher.from_settings(settings),
        dispatcher=dispatcher,
        session_factory=get_sync_session,
    )


class FreeGamesWatcher:
    """Long-lived owner of the pipeline; runs at most one cycle at a time."""

    def __init__(self, pipeline: NotificationPipeline):
        self.pipeline = pipeline
        self._run_lock = threading.Lock()
        self.last_run_at: Optional[datetime] = None
        self.last_result: Optional[CycleResult] = None

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    def run_once(self) -> Optional[CycleResult]:
        """Run one cycle; returns None if skipped or if the cycle blew up."""
        if not self._run_lock.acquire(blocking=False):
            logger.warning("Previous free games check still running, skipping")
            return None

        try:
            logger.info(f"Starting free games check at {datetime.now()}")
            result = self.pipeline.run_cycle()
            self.last_result = result
            logger.info(
                f"Free games check completed: fetched={result.fetched} "
                f"new={len(result.new_ids)} failed={len(result.failed_ids)}"
            )
            return result
        except Exception:
            logger.exception("Unexpected error during free games check")
            return None
        finally:
            self.last_run_at = datetime.now()
            self._run_lock.release()
