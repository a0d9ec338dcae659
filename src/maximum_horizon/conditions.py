"""Sequencer conditions that gate observation on a maximum-altitude ceiling."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from maximum_horizon.astro.coordinates import ra_dec_to_alt_az
from maximum_horizon.astro.sexagesimal import parse_dms_degrees, parse_hms_hours
from maximum_horizon.contracts import HorizonCheck, clamp_altitude, round_azimuth
from maximum_horizon.state.horizon_service import HorizonService
from maximum_horizon.time.clock import utc_now

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class EquatorialTarget(Protocol):
    """Anything exposing equatorial coordinates of a target."""

    @property
    def ra_hours(self) -> float:
        """Right ascension in hours."""

    @property
    def dec_degrees(self) -> float:
        """Declination in degrees."""


@dataclass(frozen=True, slots=True)
class ObserverLocation:
    """Observer site; longitude is east positive."""

    latitude_deg: float
    longitude_deg: float


@dataclass(frozen=True, slots=True)
class Target:
    """Named target with right ascension in hours and declination in degrees."""

    name: str
    ra_hours: float
    dec_degrees: float

    @classmethod
    def from_degrees(cls, name: str, ra_deg: float, dec_deg: float) -> "Target":
        """Build a target from a right ascension given in degrees."""
        return cls(name=name, ra_hours=ra_deg / 15.0, dec_degrees=dec_deg)

    @classmethod
    def from_sexagesimal(cls, name: str, ra_hms: str, dec_dms: str) -> "Target":
        """Build a target from ``hh:mm:ss`` and ``[-+]dd:mm:ss`` strings."""
        return cls(
            name=name,
            ra_hours=parse_hms_hours(ra_hms),
            dec_degrees=parse_dms_degrees(dec_dms),
        )


class MaximumHorizonCondition:
    """Allow observation while the target stays at or below the horizon profile ceiling."""

    def __init__(
        self,
        service: HorizonService,
        observer: ObserverLocation,
        profile_name: str = "",
        clock: Clock = utc_now,
    ) -> None:
        self._service = service
        self.observer = observer
        self.profile_name = profile_name
        self._clock = clock

    @property
    def effective_profile_name(self) -> str:
        """Own profile when set, otherwise the service-wide selection."""
        if self.profile_name and self.profile_name.strip():
            return self.profile_name
        return self._service.selected_profile_name

    def check(self, target: EquatorialTarget) -> HorizonCheck:
        """Evaluate the condition for ``target`` at the clock's current instant."""
        profile_name = self.effective_profile_name
        if not profile_name or not profile_name.strip():
            logger.warning(
                "No horizon profile selected (available: %s); allowing execution",
                ", ".join(self._service.list_profiles()) or "none",
            )

        result = self._service.evaluate_visibility(
            target.ra_hours,
            target.dec_degrees,
            self.observer.latitude_deg,
            self.observer.longitude_deg,
            self._clock(),
            profile_name,
        )
        if not result.visible:
            logger.info(
                "Target blocked by maximum horizon: altitude %.2f° exceeds maximum %.2f° "
                "(with %.2f° margin) at azimuth %d°",
                result.altitude_deg,
                result.max_altitude_deg + result.margin_deg,
                result.margin_deg,
                result.azimuth_deg,
            )
        return result

    def validate(self) -> list[str]:
        """Return configuration issues; an empty list means the condition is usable."""
        issues: list[str] = []
        profile_name = self.effective_profile_name
        if not profile_name or not profile_name.strip():
            issues.append("No horizon profile selected")
        elif self._service.get_profile(profile_name) is None:
            issues.append(f"Horizon profile '{profile_name}' not found")
        return issues


class SimpleMaxAltitudeCondition:
    """Allow observation while the target stays at or below a fixed altitude."""

    def __init__(
        self,
        max_altitude_deg: float,
        observer: ObserverLocation,
        clock: Clock = utc_now,
    ) -> None:
        self.max_altitude_deg = max_altitude_deg
        self.observer = observer
        self._clock = clock

    @property
    def max_altitude_deg(self) -> float:
        """Fixed ceiling in degrees, clamped to [0, 90]."""
        return self._max_altitude_deg

    @max_altitude_deg.setter
    def max_altitude_deg(self, value: float) -> None:
        self._max_altitude_deg = clamp_altitude(value)

    def check(self, target: EquatorialTarget) -> HorizonCheck:
        """Evaluate the fixed ceiling for ``target`` at the clock's current instant."""
        altitude, azimuth = ra_dec_to_alt_az(
            target.ra_hours,
            target.dec_degrees,
            self.observer.latitude_deg,
            self.observer.longitude_deg,
            self._clock(),
        )
        return HorizonCheck(
            altitude_deg=altitude,
            azimuth_deg=round_azimuth(azimuth),
            max_altitude_deg=self._max_altitude_deg,
            margin_deg=0.0,
            profile_name="",
            visible=altitude <= self._max_altitude_deg,
        )
