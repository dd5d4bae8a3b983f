"""Solar position and sun-crossing times for a single day at one location.

All times are computed in local solar hours (hours after the local solar midnight
implied by the longitude) and converted to timezone-aware UTC datetimes, rounded to
the second, at the edge of the module.

A depression angle is measured below the horizon: 0 is the geometric horizon, 18 is
astronomical twilight and a negative depression is an altitude above the horizon
(used for Asr).
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Tuple

from angles import darccos, darccot, darctan2, darcsin, dcos, dsin, dtan, normalize_degrees, normalize_hours
from geo import GeoCoordinate

LOGGER = logging.getLogger(__name__)

# Standard refraction (0.567) plus the solar semi-diameter (0.266).
HORIZON_DEPRESSION = 0.833

J2000 = 2451545.0


def julian_date(year: int, month: int, day: int) -> float:
    """Julian date at 0h UT of the given Gregorian calendar date."""
    if month <= 2:
        year -= 1
        month += 12
    a = math.floor(year / 100)
    b = 2 - a + math.floor(a / 4)
    return math.floor(365.25 * (year + 4716)) + math.floor(30.6001 * (month + 1)) + day + b - 1524.5


def sun_position(jd: float) -> Tuple[float, float]:
    """Return ``(declination_degrees, equation_of_time_hours)`` for Julian date *jd*."""
    d = jd - J2000
    g = normalize_degrees(357.529 + 0.98560028 * d)
    q = normalize_degrees(280.459 + 0.98564736 * d)
    ecliptic_lon = normalize_degrees(q + 1.915 * dsin(g) + 0.020 * dsin(2 * g))
    obliquity = 23.439 - 0.00000036 * d

    right_ascension = normalize_hours(darctan2(dcos(obliquity) * dsin(ecliptic_lon), dcos(ecliptic_lon)) / 15.0)
    declination = darcsin(dsin(obliquity) * dsin(ecliptic_lon))
    equation_of_time = q / 15.0 - right_ascension
    # q and the right ascension wrap independently near the equinox.
    equation_of_time = (equation_of_time + 12.0) % 24.0 - 12.0
    return declination, equation_of_time


@dataclass(frozen=True)
class SunCrossing:
    """Morning and evening instants at which the sun passes a depression angle."""

    before_noon: Optional[datetime]
    after_noon: Optional[datetime]


class AstronomicalClock:
    """Solar event calculator bound to one calendar day and coordinate."""

    def __init__(self, day: date, coordinate: GeoCoordinate) -> None:
        self.day = day
        self.coordinate = coordinate
        self._jdate = julian_date(day.year, day.month, day.day) - coordinate.longitude / (15.0 * 24.0)
        self._midnight_utc = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)

    def solar_noon(self) -> datetime:
        return self._to_datetime(self._mid_day(12.0))

    def sun_times(self, depression: float) -> SunCrossing:
        return SunCrossing(
            before_noon=self._optional_datetime(self._crossing_hours(depression, 6.0, after_noon=False)),
            after_noon=self._optional_datetime(self._crossing_hours(depression, 18.0, after_noon=True)),
        )

    def asr_time(self, shadow_factor: int) -> Optional[datetime]:
        hours = 13.0
        for _ in range(2):
            declination, _ = sun_position(self._jdate + hours / 24.0)
            altitude = darccot(shadow_factor + dtan(abs(self.coordinate.latitude - declination)))
            crossing = self._hour_angle_crossing(-altitude, hours, after_noon=True)
            if crossing is None:
                LOGGER.debug("Asr undefined on %s at %s (factor=%s)", self.day, self.coordinate, shadow_factor)
                return None
            hours = crossing
        return self._to_datetime(hours)

    # ------------------------------------------------------------------
    def _mid_day(self, hours: float) -> float:
        _, equation_of_time = sun_position(self._jdate + hours / 24.0)
        return normalize_hours(12.0 - equation_of_time)

    def _crossing_hours(self, depression: float, guess: float, after_noon: bool) -> Optional[float]:
        hours = guess
        for _ in range(2):
            crossing = self._hour_angle_crossing(depression, hours, after_noon)
            if crossing is None:
                LOGGER.debug(
                    "Sun never reaches depression %.3f on %s at latitude %.4f",
                    depression,
                    self.day,
                    self.coordinate.latitude,
                )
                return None
            hours = crossing
        return hours

    def _hour_angle_crossing(self, depression: float, hours: float, after_noon: bool) -> Optional[float]:
        declination, _ = sun_position(self._jdate + hours / 24.0)
        latitude = self.coordinate.latitude
        denominator = dcos(declination) * dcos(latitude)
        if abs(denominator) < 1e-12:
            return None
        cos_hour_angle = (-dsin(depression) - dsin(declination) * dsin(latitude)) / denominator
        if cos_hour_angle < -1.0 or cos_hour_angle > 1.0:
            return None
        offset = darccos(cos_hour_angle) / 15.0
        noon = self._mid_day(hours)
        return noon + offset if after_noon else noon - offset

    def _optional_datetime(self, hours: Optional[float]) -> Optional[datetime]:
        return None if hours is None else self._to_datetime(hours)

    def _to_datetime(self, solar_hours: float) -> datetime:
        utc_hours = solar_hours - self.coordinate.longitude / 15.0
        return self._midnight_utc + timedelta(seconds=round(utc_hours * 3600.0))


def sun_times(day: date, coordinate: GeoCoordinate, depression: float) -> SunCrossing:
    """Instants on *day* at which the sun is *depression* degrees below the horizon."""
    return AstronomicalClock(day, coordinate).sun_times(depression)


def solar_noon(day: date, coordinate: GeoCoordinate) -> datetime:
    return AstronomicalClock(day, coordinate).solar_noon()


def asr_time(day: date, coordinate: GeoCoordinate, shadow_factor: int) -> Optional[datetime]:
    return AstronomicalClock(day, coordinate).asr_time(shadow_factor)
