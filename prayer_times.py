"""Daily prayer schedule construction."""
from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

import pytz

from astronomy import AstronomicalClock
from calculation import BOUNDARY_ORDER, PRAYER_ORDER, CalculationProfile, resolve_boundary
from errors import DegenerateAstronomicalInputError, ScheduleOrderingViolation
from geo import GeoCoordinate

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimeAdjustments:
    """Signed minute offsets applied to each boundary after calculation."""

    fajr: float = 0
    sunrise: float = 0
    dhuhr: float = 0
    asr: float = 0
    maghrib: float = 0
    isha: float = 0

    def for_label(self, label: str) -> float:
        return float(getattr(self, label.lower()))

    @classmethod
    def uniform(cls, minutes: float) -> "TimeAdjustments":
        return cls(**{item.name: minutes for item in fields(cls)})


@dataclass(frozen=True)
class IqamaDelays:
    """Minutes between adhan and iqama for the five congregational prayers."""

    fajr: float = 0
    dhuhr: float = 0
    asr: float = 0
    maghrib: float = 0
    isha: float = 0

    def __post_init__(self) -> None:
        for item in fields(self):
            if getattr(self, item.name) < 0:
                raise ValueError(f"Iqama delay for {item.name} must be non-negative")

    def for_label(self, label: str) -> float:
        """Return the delay for *label*; sunrise has none."""
        return float(getattr(self, label.lower(), 0))


@dataclass(frozen=True)
class PrayerInfo:
    name: str
    time: datetime


@dataclass(frozen=True)
class DailySchedule:
    """Six strictly increasing boundaries for one date at one location."""

    day: date
    coordinate: GeoCoordinate
    fajr: datetime
    sunrise: datetime
    dhuhr: datetime
    asr: datetime
    maghrib: datetime
    isha: datetime

    def __post_init__(self) -> None:
        entries = self.entries()
        for earlier, later in zip(entries, entries[1:]):
            if not earlier.time < later.time:
                raise ScheduleOrderingViolation(
                    f"{earlier.name} ({earlier.time.isoformat()}) is not before "
                    f"{later.name} ({later.time.isoformat()}) on {self.day}"
                )

    def time_of(self, label: str) -> datetime:
        return getattr(self, label.lower())

    def entries(self) -> List[PrayerInfo]:
        """All six boundaries in day order, sunrise included."""
        return [PrayerInfo(name=label, time=self.time_of(label)) for label in BOUNDARY_ORDER]

    def prayers(self) -> List[PrayerInfo]:
        return [PrayerInfo(name=label, time=self.time_of(label)) for label in PRAYER_ORDER]

    def next_prayer(self, now: Optional[datetime] = None) -> Optional[PrayerInfo]:
        """Return the next upcoming prayer relative to *now*."""
        now = now or datetime.now(self.fajr.tzinfo)
        for info in self.prayers():
            if info.time > now:
                return info
        return None


def build_schedule(
    coordinate: GeoCoordinate,
    day: date,
    profile: CalculationProfile,
    adjustments: Optional[TimeAdjustments] = None,
    timezone: str = "UTC",
) -> DailySchedule:
    """Resolve the six boundaries of *day* and apply the user's minute adjustments.

    Raises DegenerateAstronomicalInputError when a boundary does not exist (polar day or
    night) and ScheduleOrderingViolation when the adjusted boundaries are out of order.
    """
    adjustments = adjustments or TimeAdjustments()
    tzinfo = pytz.timezone(timezone)
    clock = AstronomicalClock(day, coordinate)
    LOGGER.debug(
        "Building schedule for %s at (%s, %s) using %s (asr factor=%s, tz=%s)",
        day,
        coordinate.latitude,
        coordinate.longitude,
        profile.name,
        profile.asr_shadow_factor,
        timezone,
    )

    times: Dict[str, datetime] = {}
    for label in BOUNDARY_ORDER:
        resolved = resolve_boundary(profile, label, clock)
        if resolved is None:
            raise DegenerateAstronomicalInputError(label, day, coordinate.latitude)
        adjusted = resolved + timedelta(minutes=adjustments.for_label(label))
        times[label.lower()] = adjusted.astimezone(tzinfo)

    return DailySchedule(day=day, coordinate=coordinate, **times)


class PrayerScheduleBuilder:
    """Builds schedules for a fixed profile, adjustment set and timezone."""

    def __init__(
        self,
        profile: CalculationProfile,
        adjustments: Optional[TimeAdjustments] = None,
        timezone: str = "UTC",
    ) -> None:
        self.profile = profile
        self.adjustments = adjustments or TimeAdjustments()
        self.timezone = timezone

    def build(self, coordinate: GeoCoordinate, day: date) -> DailySchedule:
        return build_schedule(coordinate, day, self.profile, self.adjustments, self.timezone)

    def build_range(self, coordinate: GeoCoordinate, start: date, days: int) -> List[DailySchedule]:
        return [self.build(coordinate, start + timedelta(days=offset)) for offset in range(days)]

