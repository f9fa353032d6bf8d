import threading
from unittest.mock import MagicMock, patch

from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger

from src.config import Settings
from src.scheduler.jobs import FreeGamesWatcher, build_pipeline
from src.scheduler.pipeline import CycleResult, NotificationPipeline
from src.scheduler.runner import create_scheduler


def _settings(**overrides):
    return Settings(_env_file=None, **overrides)


class TestFreeGamesWatcher:
    def test_run_once_returns_result(self):
        pipeline = MagicMock()
        pipeline.run_cycle.return_value = CycleResult(fetched=2, new_ids=["A"])
        watcher = FreeGamesWatcher(pipeline)

        result = watcher.run_once()

        assert result.new_ids == ["A"]
        assert watcher.last_result is result
        assert watcher.last_run_at is not None
        assert watcher.is_running is False

    def test_unexpected_error_never_escapes(self):
        pipeline = MagicMock()
        pipeline.run_cycle.side_effect = RuntimeError("boom")
        watcher = FreeGamesWatcher(pipeline)

        assert watcher.run_once() is None
        # The lock is released, so the next trigger still runs
        pipeline.run_cycle.side_effect = None
        pipeline.run_cycle.return_value = CycleResult()
        assert watcher.run_once() is not None

    def test_overlapping_cycle_is_skipped(self):
        started = threading.Event()
        release = threading.Event()
        pipeline = MagicMock()

        def slow_cycle():
            started.set()
            release.wait(timeout=5)
            return CycleResult()

        pipeline.run_cycle.side_effect = slow_cycle
        watcher = FreeGamesWatcher(pipeline)

        worker = threading.Thread(target=watcher.run_once)
        worker.start()
        assert started.wait(timeout=5)

        assert watcher.is_running is True
        assert watcher.run_once() is None

        release.set()
        worker.join(timeout=5)
        assert pipeline.run_cycle.call_count == 1


class TestCreateScheduler:
    def test_cron_and_startup_jobs(self):
        watcher = FreeGamesWatcher(MagicMock())
        scheduler = create_scheduler(watcher, _settings(check_schedule="30 9 * * *"))

        jobs = {job.id: job for job in scheduler.get_jobs()}
        assert set(jobs) == {"check_free_games", "startup_check_free_games"}

        cron_job = jobs["check_free_games"]
        assert isinstance(cron_job.trigger, CronTrigger)
        assert str(cron_job.trigger.fields[5]) == "9"  # hour
        assert str(cron_job.trigger.fields[6]) == "30"  # minute
        assert cron_job.max_instances == 1
        assert isinstance(jobs["startup_check_free_games"].trigger, DateTrigger)

        # Both jobs drive the same watcher
        assert cron_job.func == watcher.run_once
        assert jobs["startup_check_free_games"].func == watcher.run_once


@patch("src.scheduler.jobs.get_sync_session")
def test_build_pipeline(mock_get_session):
    pipeline = build_pipeline(
        _settings(
            catalog_locale="de-DE",
            catalog_country="DE",
            message_delay_seconds=0.1,
            recipient_delay_seconds=2.0,
        )
    )

    assert isinstance(pipeline, NotificationPipeline)
    assert pipeline.fetcher.country == "DE"
    assert pipeline.fetcher.locale_path == "de"
    assert pipeline.dispatcher.message_delay == 0.1
    assert pipeline.dispatcher.recipient_delay == 2.0
    assert pipeline.session_factory is mock_get_session


@patch("src.notifications.telegram.get_settings", return_value=MagicMock(telegram_bot_token=""))
@patch("src.scheduler.jobs.logger")
@patch("src.scheduler.jobs.get_sync_session")
def test_build_pipeline_warns_without_token(mock_get_session, mock_logger, mock_settings):
    build_pipeline(_settings(telegram_bot_token=""))
    mock_logger.warning.assert_called_once()

    mock_logger.reset_mock()
    build_pipeline(_settings(telegram_bot_token="123:ABC"))
    mock_logger.warning.assert_not_called()
