"""Degree-based trigonometry and angle normalization helpers."""
from __future__ import annotations

import math


def dsin(degrees: float) -> float:
    return math.sin(math.radians(degrees))


def dcos(degrees: float) -> float:
    return math.cos(math.radians(degrees))


def dtan(degrees: float) -> float:
    return math.tan(math.radians(degrees))


def darcsin(value: float) -> float:
    return math.degrees(math.asin(value))


def darccos(value: float) -> float:
    return math.degrees(math.acos(value))


def darccot(value: float) -> float:
    return math.degrees(math.atan(1.0 / value))


def darctan2(y: float, x: float) -> float:
    return math.degrees(math.atan2(y, x))


def normalize_degrees(angle: float) -> float:
    """Wrap *angle* into [0, 360)."""
    wrapped = angle - 360.0 * math.floor(angle / 360.0)
    # Float rounding can land exactly on 360 for tiny negative inputs.
    if wrapped >= 360.0:
        return 0.0
    return wrapped


def normalize_hours(hours: float) -> float:
    """Wrap *hours* into [0, 24)."""
    return hours - 24.0 * math.floor(hours / 24.0)


def signed_difference(target: float, source: float) -> float:
    """Return the shortest rotation from *source* to *target*, in (-180, 180]."""
    delta = normalize_degrees(target - source)
    if delta > 180.0:
        delta -= 360.0
    return delta


def circular_distance(first: float, second: float) -> float:
    """Unsigned angular separation between two bearings, in [0, 180]."""
    return abs(signed_difference(first, second))
