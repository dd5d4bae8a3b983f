"""Great-circle bearing toward the Kaaba."""
from __future__ import annotations

from angles import darctan2, dcos, dsin, normalize_degrees
from geo import GeoCoordinate

KAABA = GeoCoordinate(latitude=21.4225, longitude=39.8262)


def bearing(observer: GeoCoordinate, target: GeoCoordinate = KAABA) -> float:
    """Initial bearing from *observer* to *target*, clockwise from true north in [0, 360)."""
    if observer == target:
        raise ValueError("Bearing from a point to itself is undefined")
    delta_lon = target.longitude - observer.longitude
    y = dsin(delta_lon) * dcos(target.latitude)
    x = dcos(observer.latitude) * dsin(target.latitude) - dsin(observer.latitude) * dcos(target.latitude) * dcos(
        delta_lon
    )
    return normalize_degrees(darctan2(y, x))


def qibla_direction(observer: GeoCoordinate) -> float:
    return bearing(observer, KAABA)
