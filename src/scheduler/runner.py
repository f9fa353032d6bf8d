from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger
from loguru import logger

from src.config import Settings, get_settings
from src.scheduler.jobs import FreeGamesWatcher, build_pipeline


def create_scheduler(
    watcher: FreeGamesWatcher, settings: Optional[Settings] = None
) -> BackgroundScheduler:
    settings = settings or get_settings()
    scheduler = BackgroundScheduler()

    # Recurring check, CHECK_SCHEDULE crontab (default 18:00 daily)
    scheduler.add_job(
        watcher.run_once,
        CronTrigger.from_crontab(settings.check_schedule),
        id="check_free_games",
        name="Check Free Games",
        max_instances=1,
        coalesce=True,
    )

    # One immediate check shortly after start
    scheduler.add_job(
        watcher.run_once,
        DateTrigger(
            run_date=datetime.now() + timedelta(seconds=settings.startup_delay_seconds)
        ),
        id="startup_check_free_games",
        name="Startup Free Games Check",
    )

    logger.info(f"Scheduler configured with schedule: {settings.check_schedule}")
    return scheduler


def start_scheduler(
    watcher: Optional[FreeGamesWatcher] = None, settings: Optional[Settings] = None
) -> BackgroundScheduler:
    settings = settings or get_settings()
    watcher = watcher or FreeGamesWatcher(build_pipeline(settings))
    scheduler = create_scheduler(watcher, settings)
    scheduler.start()
    logger.info("Scheduler started")
    return scheduler
