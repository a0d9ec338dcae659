"""Horizon profile data contracts and the max-altitude query."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from maximum_horizon.time.clock import to_utc

NO_RESTRICTION_ALTITUDE_DEG = 90.0
MIN_ALTITUDE_DEG = 0.0
AZIMUTH_SAMPLES = 360
ALTITUDE_TOLERANCE_DEG = 0.001


def normalize_azimuth(azimuth: int) -> int:
    """Normalize an integer azimuth to [0, 360)."""
    return ((azimuth % 360) + 360) % 360


def round_azimuth(azimuth_deg: float) -> int:
    """Round a real azimuth to whole degrees (half to even) in [0, 360)."""
    return normalize_azimuth(int(round(azimuth_deg)))


def clamp_altitude(altitude_deg: float) -> float:
    """Clamp an altitude ceiling to [0, 90]."""
    return max(MIN_ALTITUDE_DEG, min(NO_RESTRICTION_ALTITUDE_DEG, altitude_deg))


@dataclass(frozen=True, slots=True, eq=False)
class HorizonPoint:
    """Maximum permissible altitude at one whole-degree azimuth."""

    azimuth: int
    max_altitude: float

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HorizonPoint):
            return NotImplemented
        return (
            self.azimuth == other.azimuth
            and abs(self.max_altitude - other.max_altitude) < ALTITUDE_TOLERANCE_DEG
        )

    def __hash__(self) -> int:
        return hash(self.azimuth)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the point to a JSON-compatible dictionary."""
        return {"azimuth": int(self.azimuth), "max_altitude": float(self.max_altitude)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HorizonPoint":
        """Deserialize a point produced by :meth:`to_dict`."""
        return cls(azimuth=int(data["azimuth"]), max_altitude=float(data["max_altitude"]))


@dataclass(frozen=True, slots=True)
class HorizonCheck:
    """Outcome of one visibility evaluation.

    ``max_altitude_deg`` is the ceiling after the margin has been subtracted.
    """

    altitude_deg: float
    azimuth_deg: int
    max_altitude_deg: float
    margin_deg: float
    profile_name: str
    visible: bool


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class HorizonProfile:
    """Named azimuth-indexed ceiling of maximum permissible altitude.

    ``points`` is a plain list. :meth:`set_max_altitude` keeps azimuths unique,
    but wholesale replacement may introduce duplicates; queries then use the
    first exact match.
    """

    name: str
    points: list[HorizonPoint] = field(default_factory=list)
    description: str | None = None
    created_at: datetime = field(default_factory=_now)
    modified_at: datetime = field(default_factory=_now)

    def get_max_altitude(self, azimuth: int) -> float:
        """Return the maximum altitude at ``azimuth``.

        Exact matches are returned as stored. Between samples the ceiling is
        linearly interpolated on the circular 0-360 domain. An empty profile
        places no restriction and returns 90.
        """
        azimuth = normalize_azimuth(azimuth)

        for point in self.points:
            if point.azimuth == azimuth:
                return point.max_altitude

        sorted_points = sorted(self.points, key=lambda p: p.azimuth)
        if not sorted_points:
            return NO_RESTRICTION_ALTITUDE_DEG

        lower: HorizonPoint | None = None
        upper: HorizonPoint | None = None
        for point in sorted_points:
            if point.azimuth <= azimuth:
                lower = point
            else:
                upper = point
                break

        if lower is None:
            # Before the first sample: wrap back to the last one.
            lower = sorted_points[-1]
            upper = sorted_points[0]
            return _interpolate(
                azimuth, lower.azimuth - 360, lower.max_altitude, upper.azimuth, upper.max_altitude
            )

        if upper is None:
            # After the last sample: wrap forward to the first one.
            upper = sorted_points[0]
            return _interpolate(
                azimuth, lower.azimuth, lower.max_altitude, upper.azimuth + 360, upper.max_altitude
            )

        return _interpolate(
            azimuth, lower.azimuth, lower.max_altitude, upper.azimuth, upper.max_altitude
        )

    def is_target_visible(self, altitude: float, azimuth: int) -> bool:
        """Return whether a target at ``altitude`` is at or below the ceiling."""
        return altitude <= self.get_max_altitude(azimuth)

    def set_max_altitude(self, azimuth: int, max_altitude: float) -> None:
        """Insert or update the ceiling at one azimuth."""
        azimuth = normalize_azimuth(azimuth)
        new_point = HorizonPoint(azimuth, clamp_altitude(max_altitude))

        for idx, point in enumerate(self.points):
            if point.azimuth == azimuth:
                self.points[idx] = new_point
                break
        else:
            self.points.append(new_point)

        self.touch()

    def normalize_profile(self) -> None:
        """Replace the points by a dense sample at every whole degree."""
        self.points = [
            HorizonPoint(azimuth, self.get_max_altitude(azimuth))
            for azimuth in range(AZIMUTH_SAMPLES)
        ]
        self.touch()

    def replace_points(self, points: Iterable[HorizonPoint]) -> None:
        """Replace all points as given, without deduplication."""
        self.points = list(points)
        self.touch()

    def touch(self) -> None:
        """Mark the profile as modified now."""
        self.modified_at = _now()

    def copy(self, name: str | None = None) -> "HorizonProfile":
        """Return an independent copy, optionally under a new name."""
        return HorizonProfile(
            name=self.name if name is None else name,
            points=list(self.points),
            description=self.description,
            created_at=self.created_at,
            modified_at=self.modified_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize this profile to a JSON-compatible dictionary."""
        return {
            "name": self.name,
            "description": self.description,
            "created_at": to_utc(self.created_at).isoformat(),
            "modified_at": to_utc(self.modified_at).isoformat(),
            "points": [point.to_dict() for point in self.points],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HorizonProfile":
        """Deserialize a profile from a dictionary produced by :meth:`to_dict`."""
        raw_points = data.get("points") or []
        if not isinstance(raw_points, list):
            raise ValueError("points must be a list")
        kwargs: dict[str, Any] = {}
        if data.get("created_at"):
            kwargs["created_at"] = to_utc(datetime.fromisoformat(str(data["created_at"])))
        if data.get("modified_at"):
            kwargs["modified_at"] = to_utc(datetime.fromisoformat(str(data["modified_at"])))
        description = data.get("description")
        return cls(
            name=str(data["name"]),
            points=[HorizonPoint.from_dict(item) for item in raw_points],
            description=None if description is None else str(description),
            **kwargs,
        )


def _interpolate(
    azimuth: float,
    lower_azimuth: float,
    lower_altitude: float,
    upper_azimuth: float,
    upper_altitude: float,
) -> float:
    span = upper_azimuth - lower_azimuth
    if span == 0:
        return lower_altitude
    t = (azimuth - lower_azimuth) / span
    return lower_altitude + t * (upper_altitude - lower_altitude)
