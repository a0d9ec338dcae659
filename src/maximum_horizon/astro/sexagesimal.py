"""Sexagesimal parsing for right ascension and declination inputs."""

from __future__ import annotations


def _split_components(text: str) -> tuple[float, float, float]:
    parts = [part.strip() for part in text.strip().split(":")]
    if not parts or not parts[0] or len(parts) > 3:
        raise ValueError(f"invalid sexagesimal value: {text!r}")
    values = [float(part) for part in parts]
    values.extend([0.0] * (3 - len(values)))
    return values[0], values[1], values[2]


def parse_hms_hours(text: str) -> float:
    """Parse ``"hh:mm:ss"`` right ascension into decimal hours."""
    hours, minutes, seconds = _split_components(text)
    return abs(hours) + minutes / 60.0 + seconds / 3600.0


def parse_dms_degrees(text: str) -> float:
    """Parse ``"[-+]dd:mm:ss"`` declination into decimal degrees.

    The sign is read from the leading character so that ``"-00:30:00"`` keeps
    its negative sign.
    """
    sign = -1.0 if text.strip().startswith("-") else 1.0
    deg, minutes, seconds = _split_components(text)
    return sign * (abs(deg) + minutes / 60.0 + seconds / 3600.0)


def ra_value_to_hours(value: float) -> float:
    """Interpret a right ascension above 24 as degrees and convert it to hours."""
    return value / 15.0 if value > 24.0 else value


def parse_ra_hours(text: str) -> float:
    """Parse right ascension given as decimal hours/degrees or ``hh:mm:ss``."""
    if ":" in text:
        return parse_hms_hours(text)
    return ra_value_to_hours(float(text))


def parse_dec_degrees(text: str) -> float:
    """Parse declination given as decimal degrees or ``dd:mm:ss``."""
    if ":" in text:
        return parse_dms_degrees(text)
    return float(text)
