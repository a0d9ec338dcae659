"""Command-line entrypoint for maximum_horizon."""

from __future__ import annotations

import argparse
import logging
import os
from collections.abc import Sequence
from datetime import datetime

from maximum_horizon.astro.coordinates import ra_dec_to_alt_az
from maximum_horizon.astro.sexagesimal import parse_dec_degrees, parse_ra_hours
from maximum_horizon.contracts import HorizonPoint, HorizonProfile
from maximum_horizon.ingest.csv_import import import_horizon_csv, validate_csv_format
from maximum_horizon.ingest.image_extract import extract_horizon_from_image, validate_image_format
from maximum_horizon.state.horizon_service import HorizonService
from maximum_horizon.state.profile_store import SQLiteProfileStore
from maximum_horizon.time.clock import to_utc, utc_now


def _parse_iso_datetime(value: str) -> datetime:
    """Parse ISO datetime string and normalize to aware UTC."""
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid datetime: {value}") from exc
    return to_utc(parsed)


def _parse_ra(value: str) -> float:
    try:
        return parse_ra_hours(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid right ascension: {value}") from exc


def _parse_dec(value: str) -> float:
    try:
        return parse_dec_degrees(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid declination: {value}") from exc


def _add_store_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--store",
        default=os.getenv("MAXHORIZON_STORE_PATH"),
        help="SQLite profile store path (default: $MAXHORIZON_STORE_PATH).",
    )


def _add_observation_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--ra", type=_parse_ra, required=True, help="hours, degrees (>24) or hh:mm:ss")
    parser.add_argument("--dec", type=_parse_dec, required=True, help="degrees or dd:mm:ss")
    parser.add_argument("--lat", type=float, required=True)
    parser.add_argument("--lon", type=float, required=True)
    parser.add_argument("--time-utc", type=_parse_iso_datetime, default=None)


def build_parser() -> argparse.ArgumentParser:
    """Create and return the top-level CLI parser."""
    parser = argparse.ArgumentParser(
        prog="maximum_horizon",
        description="Maximum horizon profile and visibility tools.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.1.0",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )

    subparsers = parser.add_subparsers(dest="command")

    altaz = subparsers.add_parser("altaz", help="Convert RA/Dec to altitude/azimuth.")
    _add_observation_arguments(altaz)

    import_csv = subparsers.add_parser("import-csv", help="Import a profile from a CSV file.")
    _add_store_argument(import_csv)
    import_csv.add_argument("--name", required=True)
    import_csv.add_argument("--description", default=None)
    import_csv.add_argument("path")

    import_image = subparsers.add_parser(
        "import-image", help="Extract a profile from a silhouette image."
    )
    _add_store_argument(import_image)
    import_image.add_argument("--name", required=True)
    import_image.add_argument("--description", default=None)
    import_image.add_argument("--threshold", type=int, default=128)
    import_image.add_argument("--width", type=int, default=None)
    import_image.add_argument("path")

    list_cmd = subparsers.add_parser("list", help="List stored profiles.")
    _add_store_argument(list_cmd)

    max_alt = subparsers.add_parser("max-altitude", help="Print a profile ceiling at one azimuth.")
    _add_store_argument(max_alt)
    max_alt.add_argument("--profile", required=True)
    max_alt.add_argument("--azimuth", type=int, required=True)

    check = subparsers.add_parser("check", help="Check a target against a profile ceiling.")
    _add_store_argument(check)
    _add_observation_arguments(check)
    check.add_argument("--profile", default=os.getenv("MAXHORIZON_SELECTED_PROFILE", ""))
    check.add_argument("--margin", type=float, default=0.0, help="margin buffer degrees [0, 10]")

    return parser


def _open_service(parser: argparse.ArgumentParser, args: argparse.Namespace) -> HorizonService:
    if not args.store:
        parser.error("--store is required (or set MAXHORIZON_STORE_PATH)")
    return HorizonService(SQLiteProfileStore(args.store))


def _save_points(
    service: HorizonService, name: str, description: str | None, points: list[HorizonPoint]
) -> HorizonProfile:
    existing = service.get_profile(name)
    profile = existing.copy() if existing is not None else HorizonProfile(name=name)
    profile.description = description if description is not None else profile.description
    profile.replace_points(points)
    service.save_profile(profile)
    return profile


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI application."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(levelname)s %(name)s: %(message)s")

    if args.command == "altaz":
        when = args.time_utc or utc_now()
        altitude, azimuth = ra_dec_to_alt_az(args.ra, args.dec, args.lat, args.lon, when)
        print(f"altitude_deg={altitude:.4f} azimuth_deg={azimuth:.4f}")
        return 0

    if args.command == "import-csv":
        service = _open_service(parser, args)
        error = validate_csv_format(args.path)
        if error is not None:
            print(f"import-csv failed: {error}")
            return 1
        points = import_horizon_csv(args.path)
        try:
            profile = _save_points(service, args.name, args.description, points)
        except ValueError as exc:
            print(f"import-csv failed: {exc}")
            return 1
        print(f"import-csv complete profile={profile.name} points={len(profile.points)}")
        return 0

    if args.command == "import-image":
        service = _open_service(parser, args)
        error = validate_image_format(args.path)
        if error is not None:
            print(f"import-image failed: {error}")
            return 1
        points = extract_horizon_from_image(args.path, args.threshold, args.width)
        try:
            profile = _save_points(service, args.name, args.description, points)
        except ValueError as exc:
            print(f"import-image failed: {exc}")
            return 1
        print(f"import-image complete profile={profile.name} points={len(profile.points)}")
        return 0

    if args.command == "list":
        service = _open_service(parser, args)
        for name in service.list_profiles():
            print(name)
        return 0

    if args.command == "max-altitude":
        service = _open_service(parser, args)
        max_altitude = service.get_maximum_altitude(args.azimuth, args.profile)
        print(f"azimuth={args.azimuth % 360} max_altitude_deg={max_altitude:.4f}")
        return 0

    if args.command == "check":
        service = _open_service(parser, args)
        service.margin_buffer = args.margin
        result = service.evaluate_visibility(
            args.ra, args.dec, args.lat, args.lon, args.time_utc or utc_now(), args.profile
        )
        status = "visible" if result.visible else "blocked"
        print(
            f"{status} altitude_deg={result.altitude_deg:.4f} azimuth={result.azimuth_deg} "
            f"max_altitude_deg={result.max_altitude_deg:.4f}"
        )
        return 0

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
