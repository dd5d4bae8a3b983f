"""Classification of a wall-clock instant against a day's prayer schedule.

Evaluation is stateless: the same ``(schedule, iqama_delays, now)`` always produces the
same status, so callers can poll it on any tick without keeping history.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from calculation import FAJR, ISHA, SUNRISE
from prayer_times import DailySchedule, IqamaDelays, PrayerInfo

LOGGER = logging.getLogger(__name__)


class ScheduleState(enum.Enum):
    BEFORE_FIRST_PRAYER = "before_first_prayer"
    ADHAN_WINDOW = "adhan_window"
    PRAYER_ACTIVE = "prayer_active"


@dataclass(frozen=True)
class ScheduleEvent:
    label: str
    time: datetime
    is_iqama: bool
    remaining: timedelta


@dataclass(frozen=True)
class ScheduleStatus:
    state: ScheduleState
    current_prayer: Optional[str]
    next_event: ScheduleEvent


def evaluate(
    schedule: DailySchedule,
    iqama_delays: IqamaDelays,
    now: datetime,
    previous_day: Optional[DailySchedule] = None,
    next_day: Optional[DailySchedule] = None,
) -> ScheduleStatus:
    """Return the current prayer and the next adhan or iqama event at *now*.

    Before Fajr the current prayer is the previous day's Isha when *previous_day* is
    given, otherwise ``None``. After Isha the next event wraps to *next_day*'s Fajr, or
    to today's Fajr shifted by one day when no following schedule is supplied.
    """
    current = current_prayer(schedule, now, has_history=previous_day is not None)

    window = _iqama_window(schedule, iqama_delays, now)
    if window is None and previous_day is not None and now < schedule.fajr:
        window = _iqama_window(previous_day, iqama_delays, now)
    if window is not None:
        return ScheduleStatus(ScheduleState.ADHAN_WINDOW, current, window)

    for info in schedule.entries():
        if info.time > now:
            state = ScheduleState.BEFORE_FIRST_PRAYER if info.name == FAJR else ScheduleState.PRAYER_ACTIVE
            return ScheduleStatus(state, current, _event(info.name, info.time, False, now))

    following_fajr = next_day.fajr if next_day is not None else schedule.fajr + timedelta(days=1)
    if following_fajr <= now:
        LOGGER.warning("Schedule for %s is stale at %s; next Fajr %s already passed", schedule.day, now, following_fajr)
    return ScheduleStatus(ScheduleState.PRAYER_ACTIVE, current, _event(FAJR, following_fajr, False, now))


def current_prayer(schedule: DailySchedule, now: datetime, has_history: bool = False) -> Optional[str]:
    """Latest prayer whose adhan time has passed; sunrise never counts."""
    current: Optional[str] = None
    for info in schedule.prayers():
        if info.time <= now:
            current = info.name
    if current is None and has_history:
        return ISHA
    return current


def due_notifications(schedule: DailySchedule, iqama_delays: IqamaDelays, now: datetime) -> List[ScheduleEvent]:
    """Adhan and iqama events falling in the same minute as *now*.

    Meant for a once-per-minute tick. Sunrise gets an adhan notification but no iqama.
    """
    minute = _minute_index(now)
    due: List[ScheduleEvent] = []
    for info in schedule.entries():
        if _minute_index(info.time) == minute:
            due.append(ScheduleEvent(info.name, info.time, False, timedelta(0)))
        if info.name == SUNRISE:
            continue
        delay = iqama_delays.for_label(info.name)
        if delay <= 0:
            continue
        iqama_time = info.time + timedelta(minutes=delay)
        if _minute_index(iqama_time) == minute:
            due.append(ScheduleEvent(info.name, iqama_time, True, timedelta(0)))
    if due:
        LOGGER.debug("Due notifications at %s: %s", now, [(event.label, event.is_iqama) for event in due])
    return due


def format_remaining(delta: timedelta) -> str:
    """Render *delta* as ``HH:MM:SS``; hours are not wrapped at 24."""
    total_seconds = max(int(delta.total_seconds()), 0)
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def _iqama_window(schedule: DailySchedule, iqama_delays: IqamaDelays, now: datetime) -> Optional[ScheduleEvent]:
    for info in schedule.prayers():
        iqama_time = _iqama_time(info, iqama_delays)
        if info.time <= now < iqama_time:
            return _event(info.name, iqama_time, True, now)
    return None


def _iqama_time(info: PrayerInfo, iqama_delays: IqamaDelays) -> datetime:
    return info.time + timedelta(minutes=iqama_delays.for_label(info.name))


def _event(label: str, time: datetime, is_iqama: bool, now: datetime) -> ScheduleEvent:
    return ScheduleEvent(label=label, time=time, is_iqama=is_iqama, remaining=max(time - now, timedelta(0)))


def _minute_index(moment: datetime) -> int:
    return int(moment.timestamp() // 60)
