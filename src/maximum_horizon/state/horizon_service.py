"""Profile lookup and visibility service over a profile store.

Missing or unreadable profile data never blocks an observation: lookups fall
back to the unrestricted 90° ceiling and visibility checks to ``True``.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from threading import Lock

from maximum_horizon.astro.coordinates import ra_dec_to_alt_az
from maximum_horizon.contracts import (
    NO_RESTRICTION_ALTITUDE_DEG,
    HorizonCheck,
    HorizonProfile,
    round_azimuth,
)
from maximum_horizon.state.profile_store import ProfileStore, profile_key

logger = logging.getLogger(__name__)

MAX_MARGIN_BUFFER_DEG = 10.0
_MARGIN_EPSILON = 0.0001


def clamp_margin_buffer(value: float) -> float:
    """Clamp a margin buffer to [0, 10] degrees."""
    return max(0.0, min(MAX_MARGIN_BUFFER_DEG, value))


class HorizonService:
    """Cached access to stored horizon profiles plus global selection and margin."""

    def __init__(
        self,
        store: ProfileStore,
        selected_profile_name: str = "",
        margin_buffer: float = 0.0,
    ) -> None:
        self._store = store
        self._lock = Lock()
        self._cache: dict[str, HorizonProfile] = {}
        self._selected_profile_name = selected_profile_name or ""
        self._margin_buffer = clamp_margin_buffer(margin_buffer)
        self._preload()

    def _preload(self) -> None:
        try:
            names = self._store.list_names()
        except sqlite3.Error as exc:
            logger.warning("Failed to initialize profile cache: %s", exc)
            return
        for name in names:
            profile = self._load(name)
            if profile is not None:
                with self._lock:
                    self._cache[profile_key(profile.name)] = profile

    def _load(self, name: str) -> HorizonProfile | None:
        try:
            return self._store.get(name)
        except (ValueError, sqlite3.Error) as exc:
            logger.warning("Failed to load horizon profile %r: %s", name, exc)
            return None

    @property
    def selected_profile_name(self) -> str:
        """Globally selected profile name; empty when none is selected."""
        return self._selected_profile_name

    @selected_profile_name.setter
    def selected_profile_name(self, value: str | None) -> None:
        new_value = value or ""
        if new_value != self._selected_profile_name:
            self._selected_profile_name = new_value
            logger.debug("Selected horizon profile set to %r", new_value)

    @property
    def margin_buffer(self) -> float:
        """Global margin in degrees subtracted from profile ceilings."""
        return self._margin_buffer

    @margin_buffer.setter
    def margin_buffer(self, value: float) -> None:
        clamped = clamp_margin_buffer(value)
        if abs(self._margin_buffer - clamped) > _MARGIN_EPSILON:
            self._margin_buffer = clamped

    def list_profiles(self) -> list[str]:
        """Return available profile names in sorted order."""
        with self._lock:
            if self._cache:
                return sorted((p.name for p in self._cache.values()), key=str.casefold)
        try:
            return self._store.list_names()
        except sqlite3.Error as exc:
            logger.warning("Failed to list horizon profiles: %s", exc)
            return []

    def try_get_cached_profile(self, name: str) -> HorizonProfile | None:
        """Return a cached profile without touching the store."""
        if not name or not name.strip():
            return None
        with self._lock:
            return self._cache.get(profile_key(name))

    def get_profile(self, name: str) -> HorizonProfile | None:
        """Return a profile by name (case-insensitive), or None if unavailable."""
        cached = self.try_get_cached_profile(name)
        if cached is not None:
            return cached
        if not name or not name.strip():
            return None

        profile = self._load(name)
        if profile is not None:
            with self._lock:
                self._cache[profile_key(profile.name)] = profile
        return profile

    def save_profile(self, profile: HorizonProfile) -> None:
        """Persist a profile and refresh the cache.

        The cache holds a copy, so later edits to ``profile`` only take effect
        through another save, and a failed write leaves the cache untouched.

        Raises:
            ValueError: If the profile name is blank.
            sqlite3.Error: If the store write fails.
        """
        if not profile.name or not profile.name.strip():
            raise ValueError("Profile name cannot be empty")

        profile.touch()
        self._store.put(profile)
        with self._lock:
            self._cache[profile_key(profile.name)] = profile.copy()
        logger.info("Saved horizon profile: %s", profile.name)

    def delete_profile(self, name: str) -> bool:
        """Delete a profile, returning whether it existed."""
        removed = self._store.delete(name)
        with self._lock:
            cached = self._cache.pop(profile_key(name), None)
        if removed or cached is not None:
            logger.info("Deleted horizon profile: %s", name)
            return True
        return False

    def get_maximum_altitude(self, azimuth: int, profile_name: str) -> float:
        """Return the profile ceiling at ``azimuth``, or 90 when no profile applies."""
        if not profile_name or not profile_name.strip():
            return NO_RESTRICTION_ALTITUDE_DEG

        profile = self.get_profile(profile_name)
        if profile is None:
            logger.warning(
                "Profile %r not found, returning default max altitude (%.0f degrees)",
                profile_name,
                NO_RESTRICTION_ALTITUDE_DEG,
            )
            return NO_RESTRICTION_ALTITUDE_DEG
        return profile.get_max_altitude(azimuth)

    def is_target_visible(self, altitude: float, azimuth: int, profile_name: str) -> bool:
        """Return whether ``altitude`` is at or below the profile ceiling (no margin)."""
        profile = self.get_profile(profile_name)
        if profile is None:
            logger.warning("Profile %r not found, assuming target is visible", profile_name)
            return True
        return profile.is_target_visible(altitude, azimuth)

    def is_target_visible_at_time(
        self,
        ra_hours: float,
        dec_deg: float,
        lat_deg: float,
        lon_deg: float,
        when: datetime,
        profile_name: str | None = None,
    ) -> bool:
        """Return whether a target is at or below the ceiling minus the margin buffer.

        ``profile_name=None`` uses the globally selected profile.
        """
        return self.evaluate_visibility(
            ra_hours, dec_deg, lat_deg, lon_deg, when, profile_name
        ).visible

    def evaluate_visibility(
        self,
        ra_hours: float,
        dec_deg: float,
        lat_deg: float,
        lon_deg: float,
        when: datetime,
        profile_name: str | None = None,
    ) -> HorizonCheck:
        """Compute a target's position and compare it with the profile ceiling.

        The azimuth is rounded to whole degrees before the profile lookup and
        the margin buffer is subtracted from the ceiling. With no profile
        selected there is no restriction and no margin applies.

        Args:
            ra_hours: Right ascension in hours.
            dec_deg: Declination in degrees.
            lat_deg: Observer latitude in degrees.
            lon_deg: Observer longitude in degrees, east positive.
            when: Observation instant.
            profile_name: Profile to check against; ``None`` uses the selection.
        """
        effective_profile = self._selected_profile_name if profile_name is None else profile_name
        altitude, azimuth = ra_dec_to_alt_az(ra_hours, dec_deg, lat_deg, lon_deg, when)
        rounded_azimuth = round_azimuth(azimuth)

        if not effective_profile or not effective_profile.strip():
            return HorizonCheck(
                altitude_deg=altitude,
                azimuth_deg=rounded_azimuth,
                max_altitude_deg=NO_RESTRICTION_ALTITUDE_DEG,
                margin_deg=0.0,
                profile_name="",
                visible=True,
            )

        margin = self._margin_buffer
        max_altitude = self.get_maximum_altitude(rounded_azimuth, effective_profile) - margin
        return HorizonCheck(
            altitude_deg=altitude,
            azimuth_deg=rounded_azimuth,
            max_altitude_deg=max_altitude,
            margin_deg=margin,
            profile_name=effective_profile,
            visible=altitude <= max_altitude,
        )
