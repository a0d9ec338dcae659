"""Tests for RA/Dec to Alt/Az conversion."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from maximum_horizon.astro.coordinates import (
    greenwich_mean_sidereal_time_hours,
    hour_angle_deg,
    julian_day,
    local_sidereal_time_deg,
    normalize_angle,
    ra_dec_to_alt_az,
)


def _ra_for_hour_angle(dt: datetime, lon_deg: float, ha_deg: float) -> float:
    """Return the RA (hours) that sits at ``ha_deg`` hour angle for the observer."""
    return ((local_sidereal_time_deg(dt, lon_deg) - ha_deg) % 360.0) / 15.0


def test_julian_day_at_j2000_epoch() -> None:
    """2000-01-01 12:00 UTC is JD 2451545.0."""
    assert julian_day(datetime(2000, 1, 1, 12, 0)) == 2451545.0


def test_julian_day_shifts_january_and_february() -> None:
    """Known calendar dates around the January/February shift map to their JD."""
    assert julian_day(datetime(1987, 4, 10)) == 2446895.5
    assert julian_day(datetime(2000, 2, 29)) == 2451603.5
    assert julian_day(datetime(2000, 3, 1)) == 2451604.5


def test_julian_day_counts_milliseconds_only() -> None:
    """Sub-millisecond precision is dropped from the time of day."""
    base = datetime(2024, 6, 1, 6, 30, 15, 250_000)
    assert julian_day(base) == julian_day(base.replace(microsecond=250_999))
    assert julian_day(base) != julian_day(base.replace(microsecond=251_000))


def test_julian_day_converts_aware_datetimes_to_utc() -> None:
    """An aware datetime is the same instant as its UTC equivalent."""
    local = datetime(2024, 1, 1, 19, 0, tzinfo=timezone(timedelta(hours=-5)))
    assert julian_day(local) == julian_day(datetime(2024, 1, 2, 0, 0))


def test_gmst_at_j2000_and_range() -> None:
    """GMST equals the epoch constant at J2000 and always lies in [0, 24)."""
    assert greenwich_mean_sidereal_time_hours(2451545.0) == pytest.approx(18.697374558)
    for jd in (2400000.5, 2446895.5, 2451545.0, 2460000.25, 2470000.75):
        assert 0.0 <= greenwich_mean_sidereal_time_hours(jd) < 24.0


def test_gmst_matches_reference_value() -> None:
    """1987-04-10 0h UT has GMST 13h10m46.3668s."""
    expected = 13.0 + 10.0 / 60.0 + 46.3668 / 3600.0
    assert greenwich_mean_sidereal_time_hours(2446895.5) == pytest.approx(expected, abs=1e-3)


@pytest.mark.parametrize("angle", [-720.5, -360.0, -1e-20, -0.25, 0.0, 359.999, 360.0, 725.0])
def test_normalize_angle_range(angle: float) -> None:
    """Normalized angles are never negative and never reach 360."""
    out = normalize_angle(angle)
    assert 0.0 <= out < 360.0


def test_hour_angle_is_lst_minus_ra() -> None:
    """Hour angle is LST minus RA, wrapped into [0, 360)."""
    dt = datetime(2024, 9, 1, 2, 0, tzinfo=UTC)
    lst = local_sidereal_time_deg(dt, -74.0)
    on_meridian = hour_angle_deg(lst / 15.0, dt, -74.0)
    assert min(on_meridian, 360.0 - on_meridian) == pytest.approx(0.0, abs=1e-9)
    assert hour_angle_deg(((lst - 30.0) % 360.0) / 15.0, dt, -74.0) == pytest.approx(30.0)


def test_zenith_target_has_altitude_90() -> None:
    """A target with dec == latitude on the meridian is at the zenith."""
    dt = datetime(2024, 3, 20, 22, 15, tzinfo=UTC)
    lat, lon = 40.0, -74.0
    ra_hours = _ra_for_hour_angle(dt, lon, 0.0)

    altitude, azimuth = ra_dec_to_alt_az(ra_hours, lat, lat, lon, dt)

    assert altitude == pytest.approx(90.0, abs=1e-4)
    assert 0.0 <= azimuth < 360.0


def test_equatorial_observer_zenith_fixture() -> None:
    """At lat=0/lon=0, RA equal to LST and Dec 0 puts the target overhead."""
    dt = datetime(2024, 1, 1, 0, 0, tzinfo=UTC)
    ra_hours = _ra_for_hour_angle(dt, 0.0, 0.0)

    altitude, _ = ra_dec_to_alt_az(ra_hours, 0.0, 0.0, 0.0, dt)

    assert altitude == pytest.approx(90.0, abs=1e-4)


def test_meridian_transit_south_of_zenith() -> None:
    """On the meridian a target south of the zenith is due south at 90 - (lat - dec)."""
    dt = datetime(2024, 11, 5, 4, 0, tzinfo=UTC)
    lat, lon = 40.0, -74.0
    ra_hours = _ra_for_hour_angle(dt, lon, 0.0)

    altitude, azimuth = ra_dec_to_alt_az(ra_hours, 0.0, lat, lon, dt)

    assert altitude == pytest.approx(50.0, abs=1e-6)
    assert azimuth == pytest.approx(180.0, abs=1e-4)


def test_azimuth_quadrant_follows_hour_angle() -> None:
    """Rising targets (east of meridian) are in the east, setting ones in the west."""
    dt = datetime(2024, 7, 15, 3, 0, tzinfo=UTC)
    lat, lon = 35.0, 139.7

    _, az_east = ra_dec_to_alt_az(_ra_for_hour_angle(dt, lon, -60.0), 10.0, lat, lon, dt)
    _, az_west = ra_dec_to_alt_az(_ra_for_hour_angle(dt, lon, 60.0), 10.0, lat, lon, dt)

    assert 0.0 < az_east < 180.0
    assert 180.0 < az_west < 360.0
    assert az_east + az_west == pytest.approx(360.0, abs=1e-6)


def test_conversion_is_deterministic() -> None:
    """Identical inputs give identical outputs."""
    dt = datetime(2024, 12, 1, 23, 59, 59, 999_000)
    first = ra_dec_to_alt_az(5.5, -20.0, -33.8688, 151.2093, dt)
    second = ra_dec_to_alt_az(5.5, -20.0, -33.8688, 151.2093, dt)

    assert first.altitude_deg == pytest.approx(second.altitude_deg, abs=1e-9)
    assert first.azimuth_deg == pytest.approx(second.azimuth_deg, abs=1e-9)


def test_azimuth_always_normalized_for_unusual_inputs() -> None:
    """RA outside 0-24h, extreme latitudes and longitudes still yield azimuth in [0, 360)."""
    dt = datetime(2030, 2, 14, 18, 45, tzinfo=UTC)
    for ra in (-30.0, -1.5, 0.0, 12.0, 23.99, 48.5):
        for dec in (-90.0, -45.0, 0.0, 45.0, 90.0):
            for lat in (-90.0, -10.0, 0.0, 51.5, 90.0):
                for lon in (-540.0, -180.0, 0.0, 179.9, 400.0):
                    altitude, azimuth = ra_dec_to_alt_az(ra, dec, lat, lon, dt)
                    assert 0.0 <= azimuth < 360.0
                    assert -90.0 <= altitude <= 90.0


def test_result_unpacks_and_exposes_fields() -> None:
    """The result behaves like an (altitude, azimuth) pair with named fields."""
    result = ra_dec_to_alt_az(10.0, 20.0, 30.0, 40.0, datetime(2024, 5, 5, 5, 5))
    altitude, azimuth = result

    assert altitude == result.altitude_deg
    assert azimuth == result.azimuth_deg
