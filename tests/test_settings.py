import json

import pytest

from errors import SettingsError
from prayer_times import IqamaDelays, TimeAdjustments
from geo import GeoCoordinate, LocationInfo
from settings import load_settings, parse_settings, remember_location, save_json


def test_defaults():
    settings = parse_settings({})

    assert settings.profile.name == "MuslimWorldLeague"
    assert settings.profile.asr_shadow_factor == 1
    assert settings.adjustments == TimeAdjustments()
    assert settings.iqama_delays == IqamaDelays(fajr=20, dhuhr=15, asr=15, maghrib=5, isha=15)
    assert settings.location is None
    assert settings.auto_location is True
    assert settings.alignment_tolerance == 5.0


def test_aladhan_style_calculation_block():
    settings = parse_settings({"calculation": {"method": 4, "school": 1}})

    assert settings.profile.name == "UmmAlQura"
    assert settings.profile.asr_shadow_factor == 2


def test_full_settings():
    settings = parse_settings(
        {
            "auto_location": False,
            "location": {"city": "Jakarta", "latitude": -6.2088, "longitude": 106.8456, "timezone": "Asia/Jakarta"},
            "calculation": {"method": "KemenagRI"},
            "adjustments": {"Fajr": 2, "isha": -3},
            "iqama": {"maghrib": 7},
            "compass": {"interval_ms": 50, "smoothing": 0.3, "alignment_tolerance": 3},
        }
    )

    assert settings.profile.name == "KemenagRI"
    assert settings.adjustments == TimeAdjustments(fajr=2, isha=-3)
    assert settings.iqama_delays.maghrib == 7
    assert settings.iqama_delays.fajr == 20
    assert settings.location.timezone == "Asia/Jakarta"
    assert settings.auto_location is False
    assert (settings.compass_interval_ms, settings.compass_smoothing, settings.alignment_tolerance) == (50, 0.3, 3)


@pytest.mark.parametrize(
    "config",
    [
        {"calculation": {"method": "Atlantis"}},
        {"calculation": {"school": 5}},
        {"adjustments": {"fajr": 31}},
        {"adjustments": {"dhuhr": -30.5}},
        {"adjustments": {"midnight": 1}},
        {"adjustments": [1, 2, 3]},
        {"iqama": {"asr": -1}},
        {"iqama": {"sunrise": 5}},
        {"iqama": {"isha": "soon"}},
        {"compass": {"smoothing": True}},
    ],
)
def test_invalid_settings_raise(config):
    with pytest.raises(SettingsError):
        parse_settings(config)


def test_adjustment_bounds_are_inclusive():
    settings = parse_settings({"adjustments": {"fajr": 30, "isha": -30}})

    assert settings.adjustments.fajr == 30


def test_unknown_location_timezone_falls_back_to_utc():
    settings = parse_settings({"location": {"latitude": 1, "longitude": 2, "timezone": "Nowhere/City"}})

    assert settings.location.timezone == "UTC"


def test_load_settings_round_trip(tmp_path):
    path = tmp_path / "config.json"
    save_json(path, {"calculation": {"method": "Egyptian"}, "iqama": {"fajr": 25}})

    settings = load_settings(path)

    assert settings.profile.name == "Egyptian"
    assert settings.iqama_delays.fajr == 25


def test_missing_file_uses_defaults(tmp_path):
    assert load_settings(tmp_path / "absent.json").profile.name == "MuslimWorldLeague"


def test_corrupt_file_uses_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json", encoding="utf-8")

    assert load_settings(path).profile.name == "MuslimWorldLeague"


def test_non_object_settings(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps([1, 2]), encoding="utf-8")

    with pytest.raises(SettingsError):
        load_settings(path)


def test_remember_location_keeps_other_settings(tmp_path):
    path = tmp_path / "config.json"
    save_json(path, {"calculation": {"method": "Karachi"}, "location": {"city": "Old"}})
    location = LocationInfo("Jakarta", "ID", GeoCoordinate(-6.2088, 106.8456), "Asia/Jakarta")

    remember_location(path, location)

    settings = load_settings(path)
    assert settings.profile.name == "Karachi"
    assert settings.location == location


def test_remember_location_skips_unknown_coordinates(tmp_path):
    path = tmp_path / "config.json"

    remember_location(path, LocationInfo("Somewhere", "", None, None))

    assert not path.exists()
