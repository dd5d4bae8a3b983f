"""Loading and validation of the engine's JSON settings file."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

from calculation import DEFAULT_METHOD, CalculationProfile, get_profile
from compass import DEFAULT_INTERVAL_MS
from errors import SettingsError
from geo import LocationInfo, build_location_from_config
from prayer_times import IqamaDelays, TimeAdjustments

LOGGER = logging.getLogger(__name__)

ADJUSTMENT_LIMIT_MINUTES = 30

DEFAULT_IQAMA = {
    "fajr": 20,
    "dhuhr": 15,
    "asr": 15,
    "maghrib": 5,
    "isha": 15,
}


@dataclass
class EngineSettings:
    profile: CalculationProfile
    adjustments: TimeAdjustments
    iqama_delays: IqamaDelays
    location: Optional[LocationInfo]
    auto_location: bool = True
    compass_interval_ms: float = DEFAULT_INTERVAL_MS
    compass_smoothing: float = 0.0
    alignment_tolerance: float = 5.0


def load_settings(path: Path) -> EngineSettings:
    return parse_settings(load_json(path, default={}))


def parse_settings(config: Dict[str, Any]) -> EngineSettings:
    """Validate a settings mapping and turn it into engine inputs."""
    if not isinstance(config, dict):
        raise SettingsError("Settings must be a JSON object")

    calc_cfg = config.get("calculation", {}) or {}
    method = calc_cfg.get("method", DEFAULT_METHOD)
    school = calc_cfg.get("school", 0)
    try:
        profile = get_profile(method, school)
    except ValueError as exc:
        raise SettingsError(str(exc)) from exc

    adjustments = TimeAdjustments(**_minute_table(config.get("adjustments"), TimeAdjustments, "adjustments"))
    for item in fields(adjustments):
        value = getattr(adjustments, item.name)
        if abs(value) > ADJUSTMENT_LIMIT_MINUTES:
            raise SettingsError(
                f"Adjustment for {item.name} must be within ±{ADJUSTMENT_LIMIT_MINUTES} minutes, got {value}"
            )

    iqama_values = dict(DEFAULT_IQAMA)
    iqama_values.update(_minute_table(config.get("iqama"), IqamaDelays, "iqama"))
    try:
        iqama_delays = IqamaDelays(**iqama_values)
    except ValueError as exc:
        raise SettingsError(str(exc)) from exc

    compass_cfg = config.get("compass", {}) or {}
    settings = EngineSettings(
        profile=profile,
        adjustments=adjustments,
        iqama_delays=iqama_delays,
        location=build_location_from_config(config),
        auto_location=bool(config.get("auto_location", True)),
        compass_interval_ms=_number(compass_cfg.get("interval_ms", DEFAULT_INTERVAL_MS), "compass.interval_ms"),
        compass_smoothing=_number(compass_cfg.get("smoothing", 0.0), "compass.smoothing"),
        alignment_tolerance=_number(compass_cfg.get("alignment_tolerance", 5.0), "compass.alignment_tolerance"),
    )
    LOGGER.debug(
        "Parsed settings: method=%s asr_factor=%s auto_location=%s location=%s",
        profile.name,
        profile.asr_shadow_factor,
        settings.auto_location,
        settings.location,
    )
    return settings


def load_json(path: Path, default: Dict[str, Any]) -> Dict[str, Any]:
    if not path.exists():
        LOGGER.debug("Settings file %s not found; using defaults", path)
        return default
    with path.open("r", encoding="utf-8") as handle:
        try:
            return json.load(handle)
        except json.JSONDecodeError:
            LOGGER.exception("Settings file %s is not valid JSON; using defaults", path)
            return default


def save_json(path: Path, payload: Dict[str, Any]) -> None:
    with path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2)


def remember_location(path: Path, location: LocationInfo) -> None:
    """Store *location* as the saved fallback location, keeping the rest of the file."""
    if location.coordinate is None:
        return
    config = load_json(path, default={})
    if not isinstance(config, dict):
        config = {}
    config["location"] = {
        "city": location.city,
        "country": location.country,
        "latitude": location.coordinate.latitude,
        "longitude": location.coordinate.longitude,
        "timezone": location.timezone,
    }
    save_json(path, config)
    LOGGER.debug("Saved location %s to %s", location, path)


def _minute_table(raw: Any, target: type, section: str) -> Dict[str, float]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise SettingsError(f"'{section}' must be an object")
    allowed = {item.name for item in fields(target)}
    table: Dict[str, float] = {}
    for key, value in raw.items():
        name = str(key).lower()
        if name not in allowed:
            raise SettingsError(f"Unknown prayer '{key}' in {section}")
        table[name] = _number(value, f"{section}.{name}")
    return table


def _number(value: Any, name: str) -> float:
    if isinstance(value, bool):
        raise SettingsError(f"{name} must be a number")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise SettingsError(f"{name} must be a number, got {value!r}") from None
