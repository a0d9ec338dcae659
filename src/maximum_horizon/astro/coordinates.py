"""Equatorial to horizontal coordinate conversion.

Angles are in degrees and right ascension is in hours unless stated otherwise.
Azimuth is measured from North through East. Naive datetimes are taken as UTC.
"""

from __future__ import annotations

from datetime import datetime
from math import acos, asin, cos, degrees, floor, radians, sin
from typing import NamedTuple

from maximum_horizon.time.clock import to_utc

J2000_JD = 2451545.0
_GMST_AT_J2000_HOURS = 18.697374558
_SIDEREAL_HOURS_PER_DAY = 24.06570982441908


class AltAz(NamedTuple):
    """Horizontal coordinates of a target."""

    altitude_deg: float
    azimuth_deg: float


def normalize_angle(angle_deg: float) -> float:
    """Normalize an angle to [0, 360)."""
    out = angle_deg % 360.0
    # A tiny negative input can round up to exactly 360.0.
    if out >= 360.0:
        return 0.0
    return out


def _clamp_unit(value: float) -> float:
    return max(-1.0, min(1.0, value))


def julian_day(dt: datetime) -> float:
    """Return the Julian Day of a UTC calendar instant (Gregorian calendar).

    Time of day is counted to millisecond precision.
    """
    dt = to_utc(dt)
    year = dt.year
    month = dt.month
    hour = (
        dt.hour
        + dt.minute / 60.0
        + dt.second / 3600.0
        + (dt.microsecond // 1000) / 3_600_000.0
    )

    if month <= 2:
        year -= 1
        month += 12

    a = year // 100
    b = 2 - a + a // 4

    return (
        floor(365.25 * (year + 4716))
        + floor(30.6001 * (month + 1))
        + dt.day
        + b
        - 1524.5
        + hour / 24.0
    )


def greenwich_mean_sidereal_time_hours(jd: float) -> float:
    """Return Greenwich Mean Sidereal Time in hours [0, 24)."""
    d = jd - J2000_JD
    gmst = (_GMST_AT_J2000_HOURS + _SIDEREAL_HOURS_PER_DAY * d) % 24.0
    if gmst >= 24.0:
        return 0.0
    return gmst


def local_sidereal_time_deg(dt: datetime, longitude_deg: float) -> float:
    """Return Local Sidereal Time in degrees [0, 360) for an east-positive longitude."""
    gmst_hours = greenwich_mean_sidereal_time_hours(julian_day(dt))
    return normalize_angle(gmst_hours * 15.0 + longitude_deg)


def hour_angle_deg(ra_hours: float, dt: datetime, longitude_deg: float) -> float:
    """Return the hour angle of a right ascension in degrees [0, 360)."""
    return normalize_angle(local_sidereal_time_deg(dt, longitude_deg) - ra_hours * 15.0)


def ra_dec_to_alt_az(
    ra_hours: float,
    dec_deg: float,
    lat_deg: float,
    lon_deg: float,
    dt: datetime,
) -> AltAz:
    """Convert RA/Dec to altitude/azimuth for an observer at a UTC instant.

    Args:
        ra_hours: Right ascension in hours. Callers holding degrees convert first.
        dec_deg: Declination in degrees.
        lat_deg: Observer latitude in degrees (north positive).
        lon_deg: Observer longitude in degrees (east positive).
        dt: Observation instant. Naive values are UTC; aware values are converted.

    Returns:
        ``AltAz(altitude_deg, azimuth_deg)`` with azimuth normalized to [0, 360).
        When the azimuth is geometrically undefined (observer at a pole, or the
        target exactly at the zenith so that ``cos(lat) * cos(alt) == 0``) the
        azimuth is reported as 0.0.
    """
    ha_rad = radians(hour_angle_deg(ra_hours, dt, lon_deg))
    dec_rad = radians(dec_deg)
    lat_rad = radians(lat_deg)

    sin_alt = sin(dec_rad) * sin(lat_rad) + cos(dec_rad) * cos(lat_rad) * cos(ha_rad)
    altitude = degrees(asin(_clamp_unit(sin_alt)))

    denominator = cos(lat_rad) * cos(radians(altitude))
    if denominator == 0.0:
        return AltAz(altitude, 0.0)

    cos_az = _clamp_unit((sin(dec_rad) - sin(lat_rad) * sin_alt) / denominator)
    azimuth = degrees(acos(cos_az))

    # West of the meridian.
    if sin(ha_rad) > 0.0:
        azimuth = 360.0 - azimuth

    return AltAz(altitude, normalize_angle(azimuth))
