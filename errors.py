"""Exception types raised by the prayer engine."""
from __future__ import annotations


class PrayerEngineError(Exception):
    """Base class for all engine errors."""


class InvalidCoordinateError(PrayerEngineError, ValueError):
    """Latitude or longitude outside the valid range."""


class DegenerateAstronomicalInputError(PrayerEngineError):
    """A boundary could not be derived because the sun never reaches the required angle."""

    def __init__(self, boundary: str, day: object, latitude: float) -> None:
        super().__init__(f"{boundary} is undefined on {day} at latitude {latitude:.4f}")
        self.boundary = boundary
        self.day = day
        self.latitude = latitude


class ScheduleOrderingViolation(PrayerEngineError):
    """A built schedule is not strictly increasing."""


class UnsupportedOrientationSensorError(PrayerEngineError):
    """The platform exposes no orientation sensor."""


class OrientationPermissionDeniedError(PrayerEngineError):
    """The user refused access to the orientation sensor."""


class SettingsError(PrayerEngineError, ValueError):
    """The settings file holds a value the engine cannot use."""
