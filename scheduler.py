"""Periodic evaluation ticks and the daily schedule refresh."""
from __future__ import annotations

import logging
from contextlib import suppress
from datetime import datetime
from typing import Callable, List, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

LOGGER = logging.getLogger(__name__)

DISPLAY_TICK_SECONDS = 1
NOTIFICATION_TICK_SECONDS = 60

TickCallback = Callable[[datetime], None]


class PrayerScheduler:
    """Wrap APScheduler to drive the display tick, notification tick and daily refresh.

    Tick callbacks receive the scheduler-local ``now`` so the evaluation code never reads
    the wall clock itself.
    """

    def __init__(self, timezone: str) -> None:
        self._scheduler = BackgroundScheduler(timezone=timezone)
        self._tick_jobs: List[str] = []
        self._refresh_job_id: Optional[str] = None

    def start(self) -> None:
        if not self._scheduler.running:
            LOGGER.info("Starting background scheduler")
            self._scheduler.start()

    def shutdown(self) -> None:
        if self._scheduler.running:
            LOGGER.info("Stopping background scheduler")
            self._scheduler.shutdown(wait=False)

    @property
    def timezone(self) -> str:
        tzinfo = self._scheduler.timezone
        zone = getattr(tzinfo, "zone", None) or getattr(tzinfo, "key", None)
        return str(zone or tzinfo)

    @property
    def job_ids(self) -> List[str]:
        return [job.id for job in self._scheduler.get_jobs()]

    def schedule_ticks(
        self,
        display_callback: TickCallback,
        notification_callback: TickCallback,
        display_seconds: float = DISPLAY_TICK_SECONDS,
        notification_seconds: float = NOTIFICATION_TICK_SECONDS,
    ) -> None:
        """Replace any existing ticks with a display tick and a notification tick."""
        self._clear_tick_jobs()
        for callback, seconds in ((display_callback, display_seconds), (notification_callback, notification_seconds)):
            job = self._scheduler.add_job(
                self._dispatch,
                trigger=IntervalTrigger(seconds=seconds),
                args=[callback],
                max_instances=1,
                coalesce=True,
            )
            LOGGER.debug("Scheduled tick job %s every %ss", job.id, seconds)
            self._tick_jobs.append(job.id)

    def schedule_refresh(self, next_run: datetime, refresh_callback: Callable[[], None]) -> None:
        """Schedule a single refresh job, replacing any existing one."""
        if self._refresh_job_id:
            LOGGER.debug("Removing existing refresh job %s", self._refresh_job_id)
            with suppress(JobLookupError):
                self._scheduler.remove_job(self._refresh_job_id)
            self._refresh_job_id = None

        job = self._scheduler.add_job(refresh_callback, trigger=DateTrigger(run_date=next_run))
        LOGGER.debug("Scheduled refresh job %s at %s", job.id, next_run)
        self._refresh_job_id = job.id

    def _dispatch(self, callback: TickCallback) -> None:
        callback(datetime.now(self._scheduler.timezone))

    def _clear_tick_jobs(self) -> None:
        for job_id in self._tick_jobs:
            with suppress(JobLookupError):
                self._scheduler.remove_job(job_id)
        self._tick_jobs.clear()
