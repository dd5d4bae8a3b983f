from datetime import date, datetime, timedelta, timezone

import pytest
import pytz

from astronomy import AstronomicalClock
from calculation import BOUNDARY_ORDER, METHODS, CalculationProfile, get_profile
from errors import DegenerateAstronomicalInputError, ScheduleOrderingViolation
from geo import GeoCoordinate
from prayer_times import DailySchedule, IqamaDelays, PrayerScheduleBuilder, TimeAdjustments, build_schedule

JAKARTA = GeoCoordinate(-6.2088, 106.8456)

CITIES = {
    "Mecca": (GeoCoordinate(21.4225, 39.8262), "Asia/Riyadh"),
    "Jakarta": (JAKARTA, "Asia/Jakarta"),
    "Cairo": (GeoCoordinate(30.0444, 31.2357), "Africa/Cairo"),
    "Casablanca": (GeoCoordinate(33.5731, -7.5898), "Africa/Casablanca"),
    "New York": (GeoCoordinate(40.7128, -74.0060), "America/New_York"),
    "Sydney": (GeoCoordinate(-33.8688, 151.2093), "Australia/Sydney"),
}


@pytest.mark.parametrize("city", sorted(CITIES))
@pytest.mark.parametrize("method", ["MuslimWorldLeague", "UmmAlQura", "KemenagRI", "Dubai"])
def test_schedule_is_strictly_increasing_through_the_year(city, method):
    coordinate, tz_name = CITIES[city]
    builder = PrayerScheduleBuilder(METHODS[method], timezone=tz_name)

    for offset in range(0, 366, 29):
        schedule = builder.build(coordinate, date(2024, 1, 1) + timedelta(days=offset))
        times = [info.time for info in schedule.entries()]
        assert times == sorted(times)
        assert len(set(times)) == 6


def test_dhuhr_equals_solar_noon_plus_uniform_adjustment():
    profile = CalculationProfile("Custom", fajr_angle=20, isha_angle=18, maghrib_angle=0, asr_shadow_factor=1)
    day = date(2024, 3, 15)

    schedule = build_schedule(JAKARTA, day, profile, TimeAdjustments.uniform(2), timezone="Asia/Jakarta")

    assert schedule.dhuhr == AstronomicalClock(day, JAKARTA).solar_noon() + timedelta(minutes=2)


def test_adjustments_shift_each_boundary_independently():
    profile = METHODS["Egyptian"]
    day = date(2024, 5, 1)
    base = build_schedule(JAKARTA, day, profile)
    shifted = build_schedule(JAKARTA, day, profile, TimeAdjustments(fajr=-5, asr=3, isha=10))

    deltas = [shifted.time_of(label) - base.time_of(label) for label in BOUNDARY_ORDER]
    assert deltas == [timedelta(minutes=m) for m in (-5, 0, 0, 3, 0, 10)]


def test_times_are_localized_to_requested_timezone():
    schedule = build_schedule(JAKARTA, date(2024, 3, 15), METHODS["KemenagRI"], timezone="Asia/Jakarta")

    assert getattr(schedule.fajr.tzinfo, "zone", None) == "Asia/Jakarta"
    # Solar noon in Jakarta falls just after midday WIB in March.
    assert datetime(2024, 3, 15, 11, 55) < schedule.dhuhr.replace(tzinfo=None) < datetime(2024, 3, 15, 12, 10)
    assert schedule.fajr.date() == date(2024, 3, 15)
    assert schedule.isha.date() == date(2024, 3, 15)


def test_kemenag_bias_is_applied_before_user_adjustments():
    day = date(2024, 3, 15)
    plain = CalculationProfile("Plain", fajr_angle=20, isha_angle=18)

    biased = build_schedule(JAKARTA, day, METHODS["KemenagRI"], TimeAdjustments.uniform(1))
    reference = build_schedule(JAKARTA, day, plain)

    deltas = [biased.time_of(label) - reference.time_of(label) for label in BOUNDARY_ORDER]
    assert deltas == [timedelta(minutes=m) for m in (3, 3, 4, 3, 3, 3)]


def test_hanafi_asr_is_later():
    day = date(2024, 3, 15)
    standard = build_schedule(JAKARTA, day, get_profile("Karachi", 0))
    hanafi = build_schedule(JAKARTA, day, get_profile("Karachi", 1))

    assert hanafi.asr > standard.asr
    assert hanafi.dhuhr == standard.dhuhr


def test_polar_day_is_reported_not_guessed():
    tromso = GeoCoordinate(69.6492, 18.9553)

    with pytest.raises(DegenerateAstronomicalInputError) as excinfo:
        build_schedule(tromso, date(2024, 6, 21), METHODS["MuslimWorldLeague"])

    assert excinfo.value.boundary == "Fajr"


def test_high_latitude_twilight_is_reported():
    london = GeoCoordinate(51.5074, -0.1278)

    with pytest.raises(DegenerateAstronomicalInputError):
        build_schedule(london, date(2024, 6, 21), METHODS["MuslimWorldLeague"], timezone="Europe/London")


def test_adjustment_that_breaks_ordering_is_rejected():
    with pytest.raises(ScheduleOrderingViolation):
        build_schedule(JAKARTA, date(2024, 3, 15), METHODS["Kuwait"], TimeAdjustments(fajr=600))


def test_daily_schedule_rejects_unordered_input():
    base = datetime(2024, 3, 15, 4, 30, tzinfo=timezone.utc)
    with pytest.raises(ScheduleOrderingViolation):
        DailySchedule(
            day=date(2024, 3, 15),
            coordinate=JAKARTA,
            fajr=base,
            sunrise=base - timedelta(minutes=1),
            dhuhr=base + timedelta(hours=7),
            asr=base + timedelta(hours=10),
            maghrib=base + timedelta(hours=13),
            isha=base + timedelta(hours=14),
        )


def test_next_prayer_skips_sunrise():
    tzinfo = pytz.timezone("Asia/Jakarta")
    schedule = build_schedule(JAKARTA, date(2024, 3, 15), METHODS["KemenagRI"], timezone="Asia/Jakarta")

    after_fajr = schedule.fajr + timedelta(minutes=1)
    assert schedule.next_prayer(after_fajr).name == "Dhuhr"
    assert schedule.next_prayer(schedule.isha + timedelta(seconds=1)) is None
    assert schedule.next_prayer(tzinfo.localize(datetime(2024, 3, 15, 0, 30))).name == "Fajr"
    assert [info.name for info in schedule.prayers()] == ["Fajr", "Dhuhr", "Asr", "Maghrib", "Isha"]


def test_build_range_returns_consecutive_days():
    builder = PrayerScheduleBuilder(METHODS["Singapore"], timezone="Asia/Jakarta")

    schedules = builder.build_range(JAKARTA, date(2024, 3, 14), 3)

    assert [schedule.day for schedule in schedules] == [date(2024, 3, 14), date(2024, 3, 15), date(2024, 3, 16)]
    gap = schedules[1].dhuhr - schedules[0].dhuhr
    assert timedelta(hours=23, minutes=59) < gap < timedelta(hours=24, minutes=1)


def test_iqama_delays_validate_and_skip_sunrise():
    delays = IqamaDelays(fajr=20, maghrib=5)

    assert delays.for_label("Maghrib") == 5
    assert delays.for_label("Sunrise") == 0
    with pytest.raises(ValueError):
        IqamaDelays(isha=-1)
