"""FastAPI app exposing horizon profiles, coordinate conversion and visibility checks."""

from __future__ import annotations

import os
from dataclasses import asdict
from datetime import datetime

from fastapi import FastAPI, HTTPException, Query, Response
from pydantic import BaseModel, Field

from maximum_horizon.astro.coordinates import ra_dec_to_alt_az
from maximum_horizon.contracts import (
    HorizonPoint,
    HorizonProfile,
    clamp_altitude,
    normalize_azimuth,
)
from maximum_horizon.state.horizon_service import MAX_MARGIN_BUFFER_DEG, HorizonService
from maximum_horizon.state.profile_store import SQLiteProfileStore
from maximum_horizon.time.clock import to_utc, utc_now


class HorizonPointModel(BaseModel):
    """One azimuth/ceiling sample."""

    azimuth: int
    max_altitude: float


class ProfileRequest(BaseModel):
    """Request schema for creating or replacing a profile."""

    points: list[HorizonPointModel] = Field(default_factory=list)
    description: str | None = None


class ProfileResponse(BaseModel):
    """Response schema aligned with the HorizonProfile contract."""

    name: str
    description: str | None
    created_at: datetime
    modified_at: datetime
    points: list[HorizonPointModel]


class ProfileListResponse(BaseModel):
    """Available profile names."""

    profiles: list[str]


class MaxAltitudeResponse(BaseModel):
    """Ceiling at one azimuth."""

    profile_name: str
    azimuth: int
    max_altitude: float


class ObservationRequest(BaseModel):
    """Target, observer and instant for a horizontal-coordinate computation."""

    ra_hours: float
    dec_deg: float = Field(ge=-90.0, le=90.0)
    lat: float = Field(ge=-90.0, le=90.0)
    lon: float = Field(ge=-180.0, le=180.0)
    time_utc: datetime | None = None


class AltAzResponse(BaseModel):
    """Horizontal coordinates."""

    altitude_deg: float
    azimuth_deg: float


class VisibilityRequest(ObservationRequest):
    """Observation plus the profile to check against."""

    profile_name: str | None = None


class VisibilityResponse(BaseModel):
    """Visibility verdict with the values it was derived from."""

    altitude_deg: float
    azimuth_deg: int
    max_altitude_deg: float
    margin_deg: float
    profile_name: str
    visible: bool


def _profile_response(profile: HorizonProfile) -> ProfileResponse:
    return ProfileResponse(**profile.to_dict())


def _resolve_time(dt: datetime | None) -> datetime:
    if dt is None:
        return utc_now()
    return to_utc(dt)


def _resolve_store_path(store_path: str | None) -> str:
    """Resolve the SQLite store path from argument/environment."""
    return store_path or os.getenv("MAXHORIZON_STORE_PATH", ":memory:")


def _resolve_margin_buffer() -> float:
    """Resolve the global margin buffer from environment with validation."""
    raw = os.getenv("MAXHORIZON_MARGIN_BUFFER_DEG", "0").strip()
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError("MAXHORIZON_MARGIN_BUFFER_DEG must be a number of degrees") from exc
    if not 0.0 <= value <= MAX_MARGIN_BUFFER_DEG:
        raise ValueError(
            f"MAXHORIZON_MARGIN_BUFFER_DEG must be between 0 and {MAX_MARGIN_BUFFER_DEG:g}"
        )
    return value


def create_app(store_path: str | None = None) -> FastAPI:
    """Create and configure the FastAPI app."""
    app = FastAPI(title="Maximum Horizon API", version="0.1.0")

    store = SQLiteProfileStore(_resolve_store_path(store_path))
    service = HorizonService(
        store,
        selected_profile_name=os.getenv("MAXHORIZON_SELECTED_PROFILE", ""),
        margin_buffer=_resolve_margin_buffer(),
    )
    app.state.profile_store = store
    app.state.horizon_service = service

    def _require_profile(name: str) -> HorizonProfile:
        profile = service.get_profile(name)
        if profile is None:
            raise HTTPException(status_code=404, detail=f"profile not found: {name}")
        return profile

    @app.get("/profiles", response_model=ProfileListResponse)
    def list_profiles() -> ProfileListResponse:
        """List available profile names."""
        return ProfileListResponse(profiles=service.list_profiles())

    @app.get("/profiles/{name}", response_model=ProfileResponse)
    def get_profile(name: str) -> ProfileResponse:
        """Return one stored profile."""
        return _profile_response(_require_profile(name))

    @app.put("/profiles/{name}", response_model=ProfileResponse)
    def put_profile(name: str, payload: ProfileRequest) -> ProfileResponse:
        """Create or replace a profile with the given points."""
        existing = service.get_profile(name)
        profile = existing.copy() if existing is not None else HorizonProfile(name=name)
        profile.description = payload.description
        profile.replace_points(
            HorizonPoint(normalize_azimuth(p.azimuth), clamp_altitude(p.max_altitude))
            for p in payload.points
        )
        try:
            service.save_profile(profile)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return _profile_response(profile)

    @app.delete("/profiles/{name}", status_code=204)
    def delete_profile(name: str) -> Response:
        """Delete a stored profile."""
        if not service.delete_profile(name):
            raise HTTPException(status_code=404, detail=f"profile not found: {name}")
        return Response(status_code=204)

    @app.post("/profiles/{name}/normalize", response_model=ProfileResponse)
    def normalize_profile(name: str) -> ProfileResponse:
        """Densify a stored profile to one point per whole degree."""
        profile = _require_profile(name).copy()
        profile.normalize_profile()
        service.save_profile(profile)
        return _profile_response(profile)

    @app.get("/profiles/{name}/max-altitude", response_model=MaxAltitudeResponse)
    def get_max_altitude(name: str, azimuth: int = Query(...)) -> MaxAltitudeResponse:
        """Return the ceiling at ``azimuth``; unknown profiles impose no restriction."""
        return MaxAltitudeResponse(
            profile_name=name,
            azimuth=azimuth % 360,
            max_altitude=service.get_maximum_altitude(azimuth, name),
        )

    @app.post("/altaz", response_model=AltAzResponse)
    def post_altaz(payload: ObservationRequest) -> AltAzResponse:
        """Convert RA/Dec to altitude/azimuth."""
        altitude, azimuth = ra_dec_to_alt_az(
            payload.ra_hours, payload.dec_deg, payload.lat, payload.lon, _resolve_time(payload.time_utc)
        )
        return AltAzResponse(altitude_deg=altitude, azimuth_deg=azimuth)

    @app.post("/visibility", response_model=VisibilityResponse)
    def post_visibility(payload: VisibilityRequest) -> VisibilityResponse:
        """Check a target against a profile ceiling minus the global margin buffer."""
        result = service.evaluate_visibility(
            payload.ra_hours,
            payload.dec_deg,
            payload.lat,
            payload.lon,
            _resolve_time(payload.time_utc),
            payload.profile_name,
        )
        return VisibilityResponse(**asdict(result))

    return app


app = create_app()
