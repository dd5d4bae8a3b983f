"""Headless entry point that keeps the prayer schedule and Qibla bearing current."""
from __future__ import annotations

import logging
import sys
import threading
from datetime import date, datetime, time as time_module, timedelta
from pathlib import Path
from typing import Optional, Tuple

import pytz

from compass import HeadingSample, HeadingTracker
from errors import PrayerEngineError
from geo import LocationInfo, detect_location_from_ip, system_timezone
from prayer_times import DailySchedule, PrayerScheduleBuilder
from qibla import qibla_direction
from schedule_state import ScheduleStatus, due_notifications, evaluate, format_remaining
from scheduler import PrayerScheduler
from settings import EngineSettings, load_settings, remember_location

APP_ROOT = Path(__file__).parent
CONFIG_PATH = APP_ROOT / "config.json"

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
LOGGER = logging.getLogger(__name__)


class PrayerApp:
    """Coordinates location, schedule building, evaluation ticks and the compass session."""

    def __init__(self, settings: EngineSettings, config_path: Optional[Path] = None) -> None:
        self.settings = settings
        self.config_path = config_path
        self.current_location: Optional[LocationInfo] = settings.location
        self.timezone = "UTC"
        self.builder: Optional[PrayerScheduleBuilder] = None
        # (today, yesterday, tomorrow); always replaced as one tuple.
        self._days: Optional[Tuple[DailySchedule, DailySchedule, DailySchedule]] = None
        self.qibla_bearing: Optional[float] = None
        self.last_status: Optional[ScheduleStatus] = None
        self.last_alignment: Optional[bool] = None
        self.scheduler: Optional[PrayerScheduler] = None
        self.tracker = HeadingTracker(settings.compass_interval_ms, settings.compass_smoothing)
        self._stop = threading.Event()
        LOGGER.debug(
            "Initial state -> method=%s auto_location=%s manual_location=%s",
            settings.profile.name,
            settings.auto_location,
            self.current_location,
        )

    @property
    def today(self) -> Optional[DailySchedule]:
        return self._days[0] if self._days else None

    @property
    def yesterday(self) -> Optional[DailySchedule]:
        return self._days[1] if self._days else None

    @property
    def tomorrow(self) -> Optional[DailySchedule]:
        return self._days[2] if self._days else None

    # ------------------------------------------------------------------
    def refresh(self, now: Optional[datetime] = None) -> None:
        location = self._resolve_location()
        assert location.coordinate is not None
        self.timezone = location.timezone or system_timezone()
        tzinfo = pytz.timezone(self.timezone)
        now = now or datetime.now(tzinfo)
        today = now.astimezone(tzinfo).date()

        self.builder = PrayerScheduleBuilder(self.settings.profile, self.settings.adjustments, self.timezone)
        yesterday, current, tomorrow = self.builder.build_range(location.coordinate, today - timedelta(days=1), 3)
        self._days = (current, yesterday, tomorrow)
        self.qibla_bearing = qibla_direction(location.coordinate)
        LOGGER.info(
            "Prayer times refreshed for %s, %s on %s (qibla %.2f°)",
            location.city,
            location.country,
            today,
            self.qibla_bearing,
        )
        for info in current.entries():
            LOGGER.info("  %-8s %s", info.name, info.time.strftime("%H:%M:%S"))

    def on_display_tick(self, now: datetime) -> ScheduleStatus:
        schedule, previous_day, next_day = self._schedules()
        status = evaluate(schedule, self.settings.iqama_delays, now, previous_day=previous_day, next_day=next_day)
        previous = self.last_status
        self.last_status = status
        if previous is None or (previous.state, previous.next_event.label, previous.next_event.is_iqama) != (
            status.state,
            status.next_event.label,
            status.next_event.is_iqama,
        ):
            LOGGER.info(
                "Now %s (current=%s); next %s%s in %s",
                status.state.value,
                status.current_prayer,
                status.next_event.label,
                " iqama" if status.next_event.is_iqama else "",
                format_remaining(status.next_event.remaining),
            )
        return status

    def on_notification_tick(self, now: datetime) -> None:
        schedule, _, _ = self._schedules()
        if now.astimezone(pytz.timezone(self.timezone)).date() != schedule.day:
            LOGGER.info("Date changed; rebuilding schedule")
            self.refresh(now)
            schedule, _, _ = self._schedules()
        for event in due_notifications(schedule, self.settings.iqama_delays, now):
            kind = "Iqama" if event.is_iqama else "Adhan"
            LOGGER.info("%s time for %s (%s)", kind, event.label, event.time.strftime("%H:%M"))

    def on_heading(self, sample: HeadingSample) -> Optional[bool]:
        """Feed one orientation reading and report whether the device faces the Qibla."""
        if self.tracker.ingest(sample) is None or self.qibla_bearing is None:
            return None
        aligned = self.tracker.is_aligned(self.qibla_bearing, self.settings.alignment_tolerance)
        if aligned != self.last_alignment:
            heading = self.tracker.heading
            LOGGER.info(
                "Heading %.1f° is %s the qibla (%.1f° ± %.1f°)",
                heading.degrees if heading else float("nan"),
                "aligned with" if aligned else "off",
                self.qibla_bearing,
                self.settings.alignment_tolerance,
            )
            self.last_alignment = aligned
        return aligned

    def run(self) -> int:
        try:
            self.refresh()
        except PrayerEngineError:
            LOGGER.exception("Unable to build today's prayer schedule")
            return 1
        except RuntimeError:
            LOGGER.exception("Unable to resolve a location")
            return 1

        # No orientation hardware is available when running headless.
        self.tracker.mark_unsupported()

        self._ensure_scheduler(self.timezone)
        assert self.scheduler is not None
        self.scheduler.schedule_ticks(self.on_display_tick, self.on_notification_tick)
        self._schedule_next_refresh()
        try:
            self._stop.wait()
        except KeyboardInterrupt:
            LOGGER.info("Interrupted; shutting down")
        finally:
            self._cleanup()
        return 0

    def stop(self) -> None:
        self._stop.set()

    # ------------------------------------------------------------------
    def _resolve_location(self) -> LocationInfo:
        if self.settings.auto_location:
            LOGGER.debug("Attempting automatic location detection via IP lookup")
            try:
                location = detect_location_from_ip()
            except Exception:  # pragma: no cover - network failure
                LOGGER.warning("Automatic location detection failed; falling back to saved location", exc_info=True)
            else:
                self.current_location = location
                if self.config_path is not None:
                    remember_location(self.config_path, location)
                return location

        if self.current_location and self.current_location.coordinate is not None:
            LOGGER.debug("Using configured location: %s", self.current_location)
            return self.current_location
        raise RuntimeError("Location not configured")

    def _schedules(self) -> Tuple[DailySchedule, Optional[DailySchedule], Optional[DailySchedule]]:
        days = self._days
        if days is None:
            raise RuntimeError("Schedule not built yet; call refresh() first")
        return days

    def _schedule_next_refresh(self) -> None:
        assert self.scheduler is not None and self.today is not None
        self.scheduler.schedule_refresh(self._next_refresh_time(self.today.day), self._refresh_job)

    def _refresh_job(self) -> None:
        try:
            self.refresh()
        except PrayerEngineError:
            LOGGER.exception("Scheduled refresh failed")
        finally:
            self._schedule_next_refresh()

    def _next_refresh_time(self, day: date) -> datetime:
        tzinfo = pytz.timezone(self.timezone)
        refresh_naive = datetime.combine(day + timedelta(days=1), time_module(hour=0, minute=5))
        return tzinfo.localize(refresh_naive)

    def _ensure_scheduler(self, timezone: str) -> None:
        if self.scheduler and self.scheduler.timezone == timezone:
            LOGGER.debug("Scheduler already configured for timezone %s", timezone)
            return
        if self.scheduler:
            LOGGER.debug("Shutting down existing scheduler for timezone %s", self.scheduler.timezone)
            self.scheduler.shutdown()
        self.scheduler = PrayerScheduler(timezone)
        self.scheduler.start()
        LOGGER.debug("Started scheduler for timezone %s", timezone)

    def _cleanup(self) -> None:
        if self.scheduler:
            self.scheduler.shutdown()


def main(config_path: Path = CONFIG_PATH) -> int:
    try:
        settings = load_settings(config_path)
    except PrayerEngineError:
        LOGGER.exception("Invalid settings in %s", config_path)
        return 1
    return PrayerApp(settings, config_path).run()


if __name__ == "__main__":
    sys.exit(main())
