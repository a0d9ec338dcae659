"""Tests for cached horizon profile lookups and visibility checks."""

from __future__ import annotations

import logging
import sqlite3
from datetime import UTC, datetime

import pytest

from maximum_horizon.astro.coordinates import local_sidereal_time_deg
from maximum_horizon.contracts import HorizonPoint, HorizonProfile
from maximum_horizon.state.horizon_service import HorizonService, clamp_margin_buffer
from maximum_horizon.state.profile_store import SQLiteProfileStore

_WHEN = datetime(2024, 10, 1, 3, 0, tzinfo=UTC)
_LAT = 40.0
_LON = -74.0


def _service(tmp_path, **kwargs) -> HorizonService:
    return HorizonService(SQLiteProfileStore(str(tmp_path / "profiles.db")), **kwargs)


def _southern_target_ra() -> float:
    """RA on the meridian at ``_WHEN``; with dec -5 it culminates at 45° due south."""
    return local_sidereal_time_deg(_WHEN, _LON) / 15.0


def test_save_and_get_profile_case_insensitive(tmp_path) -> None:
    """Saved profiles are found regardless of name case."""
    service = _service(tmp_path)
    service.save_profile(HorizonProfile(name="Backyard", points=[HorizonPoint(0, 20.0)]))

    profile = service.get_profile("BACKYARD")

    assert profile is not None
    assert profile.name == "Backyard"
    assert service.list_profiles() == ["Backyard"]


def test_save_profile_rejects_blank_name(tmp_path) -> None:
    """A blank name cannot be persisted."""
    service = _service(tmp_path)
    with pytest.raises(ValueError, match="Profile name cannot be empty"):
        service.save_profile(HorizonProfile(name="  "))


def test_service_preloads_existing_profiles(tmp_path) -> None:
    """Profiles already in the store are available from the cache at startup."""
    db = str(tmp_path / "profiles.db")
    SQLiteProfileStore(db).put(HorizonProfile(name="Roof", points=[HorizonPoint(90, 30.0)]))

    service = HorizonService(SQLiteProfileStore(db))

    assert service.try_get_cached_profile("roof") is not None
    assert service.try_get_cached_profile("") is None


def test_delete_profile(tmp_path) -> None:
    """Deleting removes a profile from store and cache."""
    service = _service(tmp_path)
    service.save_profile(HorizonProfile(name="Roof"))

    assert service.delete_profile("roof") is True
    assert service.get_profile("Roof") is None
    assert service.delete_profile("roof") is False


def test_missing_profile_never_restricts(tmp_path, caplog) -> None:
    """Unknown or blank profile names fall back to 90° and always visible."""
    service = _service(tmp_path)

    with caplog.at_level(logging.WARNING, logger="maximum_horizon.state.horizon_service"):
        assert service.get_maximum_altitude(120, "nope") == 90.0
        assert service.is_target_visible(89.0, 120, "nope") is True
    assert service.get_maximum_altitude(120, "") == 90.0
    assert any("not found" in message for message in caplog.messages)


def test_corrupt_profile_is_treated_as_missing(tmp_path) -> None:
    """A profile whose payload cannot be decoded behaves like a missing one."""
    store = SQLiteProfileStore(str(tmp_path / "profiles.db"))
    store._conn.execute(
        "INSERT INTO horizon_profile (name_key, name, payload_json) VALUES (?, ?, ?)",
        ("broken", "broken", '{"points": []}'),
    )
    store._conn.commit()

    service = HorizonService(store)

    assert service.get_profile("broken") is None
    assert service.get_maximum_altitude(0, "broken") == 90.0


def test_margin_buffer_is_clamped(tmp_path) -> None:
    """Margin buffer values are held within [0, 10] degrees."""
    service = _service(tmp_path, margin_buffer=25.0)
    assert service.margin_buffer == 10.0

    service.margin_buffer = -1.0
    assert service.margin_buffer == 0.0

    service.margin_buffer = 2.5
    assert service.margin_buffer == 2.5
    assert clamp_margin_buffer(11.0) == 10.0


def test_selected_profile_name_defaults_to_empty(tmp_path) -> None:
    """Selection defaults to no profile and accepts None as a reset."""
    service = _service(tmp_path, selected_profile_name="Roof")
    assert service.selected_profile_name == "Roof"

    service.selected_profile_name = None
    assert service.selected_profile_name == ""


def test_visibility_at_time_respects_ceiling_and_margin(tmp_path) -> None:
    """A target at ~45° due south is checked against the southern ceiling minus margin."""
    service = _service(tmp_path)
    service.save_profile(HorizonProfile(name="Low", points=[HorizonPoint(180, 30.0)]))
    service.save_profile(HorizonProfile(name="High", points=[HorizonPoint(180, 60.0)]))
    ra = _southern_target_ra()

    assert not service.is_target_visible_at_time(ra, -5.0, _LAT, _LON, _WHEN, "Low")
    assert service.is_target_visible_at_time(ra, -5.0, _LAT, _LON, _WHEN, "High")

    service.margin_buffer = 5.0
    assert service.is_target_visible_at_time(ra, -5.0, _LAT, _LON, _WHEN, "High")
    assert not service.is_target_visible_at_time(ra, -5.0, _LAT, _LON, _WHEN, "Low")

    service.margin_buffer = 10.0
    service.save_profile(HorizonProfile(name="Edge", points=[HorizonPoint(180, 54.0)]))
    assert not service.is_target_visible_at_time(ra, -5.0, _LAT, _LON, _WHEN, "Edge")


def test_visibility_at_time_uses_selected_profile(tmp_path) -> None:
    """Omitting the profile name falls back to the globally selected one."""
    service = _service(tmp_path, selected_profile_name="Low")
    service.save_profile(HorizonProfile(name="Low", points=[HorizonPoint(180, 30.0)]))
    ra = _southern_target_ra()

    assert not service.is_target_visible_at_time(ra, -5.0, _LAT, _LON, _WHEN)

    service.selected_profile_name = ""
    assert service.is_target_visible_at_time(ra, -5.0, _LAT, _LON, _WHEN)


class _FailingWriteStore(SQLiteProfileStore):
    """SQLite store whose writes always fail."""

    def put(self, profile: HorizonProfile) -> None:
        raise sqlite3.OperationalError("database is locked")


def test_evaluate_visibility_reports_check_details(tmp_path) -> None:
    """The evaluation carries the rounded azimuth, margin-adjusted ceiling and verdict."""
    service = _service(tmp_path, margin_buffer=5.0)
    service.save_profile(HorizonProfile(name="Low", points=[HorizonPoint(180, 30.0)]))

    result = service.evaluate_visibility(_southern_target_ra(), -5.0, _LAT, _LON, _WHEN, "Low")

    assert result.altitude_deg == pytest.approx(45.0, abs=1e-4)
    assert result.azimuth_deg == 180
    assert result.max_altitude_deg == pytest.approx(25.0)
    assert result.margin_deg == 5.0
    assert result.profile_name == "Low"
    assert result.visible is False


def test_evaluate_visibility_without_profile_is_unrestricted(tmp_path) -> None:
    """No selected profile means a 90° ceiling and no margin."""
    service = _service(tmp_path, margin_buffer=10.0)

    result = service.evaluate_visibility(_southern_target_ra(), 40.0, _LAT, _LON, _WHEN)

    assert result.visible is True
    assert result.max_altitude_deg == 90.0
    assert result.margin_deg == 0.0
    assert result.profile_name == ""


def test_saved_profile_is_cached_as_a_copy(tmp_path) -> None:
    """Editing a profile after saving does not change the cached one."""
    service = _service(tmp_path)
    profile = HorizonProfile(name="Roof", points=[HorizonPoint(0, 20.0)])
    service.save_profile(profile)

    profile.set_max_altitude(0, 70.0)

    assert service.get_maximum_altitude(0, "Roof") == 20.0


def test_failed_write_leaves_cache_unchanged(tmp_path) -> None:
    """A store error on save propagates and keeps the previously cached points."""
    db = str(tmp_path / "profiles.db")
    SQLiteProfileStore(db).put(HorizonProfile(name="Roof", points=[HorizonPoint(0, 20.0)]))
    service = HorizonService(_FailingWriteStore(db))

    updated = service.get_profile("Roof").copy()
    updated.set_max_altitude(0, 70.0)
    with pytest.raises(sqlite3.OperationalError):
        service.save_profile(updated)

    assert service.get_maximum_altitude(0, "Roof") == 20.0
