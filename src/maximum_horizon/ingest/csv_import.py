"""Import horizon points from CSV files.

Accepted layouts are a bare two-column ``azimuth,altitude`` table or a table
with a header row naming the columns, e.g. ``Azimuth,MaxAltitude``.
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path

from maximum_horizon.contracts import HorizonPoint, clamp_altitude, round_azimuth

logger = logging.getLogger(__name__)

_HEADER_KEYWORDS = ("azimuth", "angle", "degree", "altitude", "height")
_AZIMUTH_KEYWORDS = ("azimuth", "angle", "degree")
_ALTITUDE_KEYWORDS = ("altitude", "height", "max")


def _read_rows(path: Path) -> list[list[str]]:
    with path.open(newline="", encoding="utf-8-sig") as f:
        return list(csv.reader(f))


def _looks_like_header(row: list[str]) -> bool:
    line = ",".join(row).lower()
    return any(keyword in line for keyword in _HEADER_KEYWORDS)


def _detect_columns(header: list[str] | None) -> tuple[int, int]:
    """Return ``(azimuth_col, altitude_col)`` from a header row, defaulting to 0 and 1."""
    azimuth_col = -1
    altitude_col = -1
    if header is not None:
        for idx, raw in enumerate(header):
            name = raw.strip().lower()
            if azimuth_col == -1 and any(k in name for k in _AZIMUTH_KEYWORDS):
                azimuth_col = idx
            if altitude_col == -1 and any(k in name for k in _ALTITUDE_KEYWORDS):
                altitude_col = idx
    if azimuth_col == -1:
        azimuth_col = 0
    if altitude_col == -1:
        altitude_col = 1
    return azimuth_col, altitude_col


def import_horizon_csv(path: str | Path) -> list[HorizonPoint]:
    """Parse a CSV file into horizon points sorted by azimuth.

    Azimuths are rounded to whole degrees and normalized to [0, 360); altitudes
    are clamped to [0, 90]. When an azimuth occurs more than once the last row
    wins. Unparseable rows are skipped with a warning.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If the file has no rows.
    """
    path = Path(path)
    rows = _read_rows(path)
    if not rows:
        raise ValueError("CSV file is empty")

    start = 1 if _looks_like_header(rows[0]) else 0
    azimuth_col, altitude_col = _detect_columns(rows[0] if start else None)

    by_azimuth: dict[int, HorizonPoint] = {}
    for line_no, row in enumerate(rows[start:], start=start + 1):
        fields = [value.strip() for value in row]
        if not any(fields):
            continue
        if len(fields) < 2:
            logger.warning("Skipping invalid CSV line %d: %s", line_no, ",".join(row))
            continue
        if azimuth_col >= len(fields) or altitude_col >= len(fields):
            logger.warning("Skipping CSV line %d: insufficient columns", line_no)
            continue
        try:
            azimuth = float(fields[azimuth_col])
            altitude = float(fields[altitude_col])
        except ValueError:
            logger.warning("Skipping CSV line %d: could not parse numbers", line_no)
            continue

        point = HorizonPoint(round_azimuth(azimuth), clamp_altitude(altitude))
        by_azimuth[point.azimuth] = point

    points = sorted(by_azimuth.values(), key=lambda p: p.azimuth)
    logger.info("Imported %d horizon points from CSV file %s", len(points), path)
    return points


def validate_csv_format(path: str | Path) -> str | None:
    """Check that a CSV file can be imported.

    Returns:
        An error message, or ``None`` when the first data row parses.
    """
    path = Path(path)
    if not path.is_file():
        return "File does not exist"

    try:
        rows = [row for row in _read_rows(path) if any(value.strip() for value in row)]
    except (OSError, UnicodeDecodeError, csv.Error) as exc:
        return f"Error validating CSV file: {exc}"

    if not rows:
        return "CSV file is empty"

    start = 1 if _looks_like_header(rows[0]) else 0
    if len(rows) <= start:
        return "CSV file contains only header row"

    first = rows[start]
    if len(first) < 2:
        return "CSV file must have at least 2 columns"

    try:
        float(first[0].strip())
        float(first[1].strip())
    except ValueError:
        return "Could not parse numeric values from CSV file"
    return None
