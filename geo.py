"""Geographic coordinates and location detection."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, Optional

import pytz
import requests
from tzlocal import get_localzone_name

from errors import InvalidCoordinateError

LOGGER = logging.getLogger(__name__)

IPINFO_URL = "https://ipinfo.io/json"


@dataclass(frozen=True)
class GeoCoordinate:
    """A point on the Earth in decimal degrees."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        for name, value, limit in (("latitude", self.latitude, 90.0), ("longitude", self.longitude, 180.0)):
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                raise InvalidCoordinateError(f"{name} must be a number, got {value!r}")
            if not math.isfinite(value) or abs(value) > limit:
                raise InvalidCoordinateError(f"{name} {value} outside [-{limit:g}, {limit:g}]")


@dataclass
class LocationInfo:
    city: str
    country: str
    coordinate: Optional[GeoCoordinate]
    timezone: Optional[str]


def detect_location_from_ip(timeout: int = 5) -> LocationInfo:
    """Attempt to detect approximate location using the ipinfo.io service."""
    LOGGER.debug("Requesting IP-based location from ipinfo.io (timeout=%s)", timeout)
    response = requests.get(IPINFO_URL, timeout=timeout)
    LOGGER.debug("ipinfo.io response status: %s", response.status_code)
    response.raise_for_status()
    payload = response.json()
    LOGGER.debug("ipinfo.io payload keys: %s", list(payload.keys()))

    loc_token = payload.get("loc")
    if not loc_token or "," not in loc_token:
        raise RuntimeError("ipinfo.io response did not include coordinates")
    latitude, longitude = map(float, loc_token.split(",", 1))
    coordinate = GeoCoordinate(latitude, longitude)
    LOGGER.debug("Parsed coordinates from ipinfo.io: lat=%s lon=%s", latitude, longitude)

    timezone = resolve_timezone(payload.get("timezone") or system_timezone())
    return LocationInfo(
        city=payload.get("city", ""),
        country=payload.get("country", ""),
        coordinate=coordinate,
        timezone=timezone,
    )


def build_location_from_config(config: Dict[str, object]) -> Optional[LocationInfo]:
    """Create a LocationInfo instance if the config contains the required data."""
    location_cfg = config.get("location") if isinstance(config, dict) else None
    if not isinstance(location_cfg, dict):
        return None

    latitude = _safe_float(location_cfg.get("latitude"))
    longitude = _safe_float(location_cfg.get("longitude"))
    coordinate = None
    if latitude is not None and longitude is not None:
        try:
            coordinate = GeoCoordinate(latitude, longitude)
        except InvalidCoordinateError:
            LOGGER.exception("Invalid coordinates in location config: %s", location_cfg)
            return None

    timezone = location_cfg.get("timezone")
    return LocationInfo(
        city=str(location_cfg.get("city", "")),
        country=str(location_cfg.get("country", "")),
        coordinate=coordinate,
        timezone=resolve_timezone(str(timezone)) if timezone else None,
    )


def system_timezone() -> str:
    try:
        return get_localzone_name()
    except Exception:  # pragma: no cover - platform specific
        LOGGER.warning("Unable to determine system timezone; defaulting to UTC", exc_info=True)
        return "UTC"


def resolve_timezone(name: Optional[str]) -> str:
    """Return *name* if pytz knows it, otherwise UTC."""
    if not name:
        return "UTC"
    try:
        pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        LOGGER.warning("Unknown timezone '%s'; falling back to UTC", name)
        return "UTC"
    return name


def _safe_float(value: Optional[object]) -> Optional[float]:
    try:
        if value in (None, ""):
            return None
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
