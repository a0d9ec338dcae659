"""Extract horizon points from a silhouette image.

Light pixels are open sky and dark pixels are obstructions. Each image column
maps to one azimuth; the bottom row is the horizon (0°) and the top row is the
zenith (90°).
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
from PIL import Image, UnidentifiedImageError

from maximum_horizon.contracts import HorizonPoint

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".bmp"})
MIN_IMAGE_SIZE_PX = 10


def _brightness(rgb: np.ndarray) -> np.ndarray:
    """Return integer luma 0-255 for an ``(h, w, 3)`` RGB array."""
    rgb = rgb.astype(np.float64)
    luma = 0.299 * rgb[..., 0] + 0.587 * rgb[..., 1] + 0.114 * rgb[..., 2]
    return luma.astype(np.int64)


def extract_horizon_from_image(
    path: str | Path,
    threshold: int = 128,
    image_width: int | None = None,
) -> list[HorizonPoint]:
    """Extract one horizon point per target azimuth column.

    Args:
        path: Image file path.
        threshold: Minimum brightness (0-255) counted as open sky.
        image_width: Number of azimuth samples to produce. Defaults to the
            image width, i.e. one sample per column.

    Returns:
        Points sorted by azimuth. A column with no open-sky pixel yields 0°.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Image file not found: {path}")

    with Image.open(path) as img:
        pixels = np.asarray(img.convert("RGB"))

    height, width = pixels.shape[0], pixels.shape[1]
    target_width = image_width if image_width is not None else width
    scale = target_width / width
    logger.info(
        "Processing image: %dx%d pixels, target width: %d", width, height, target_width
    )

    bright = _brightness(pixels) >= threshold

    points: dict[int, HorizonPoint] = {}
    for target_azimuth in range(target_width):
        column = min(int(target_azimuth / scale), width - 1)
        rows = np.flatnonzero(bright[:, column])
        max_altitude = 90.0 * (1.0 - rows[0] / height) if rows.size else 0.0

        azimuth = target_azimuth % 360
        if azimuth not in points:
            points[azimuth] = HorizonPoint(azimuth, float(max_altitude))

    result = sorted(points.values(), key=lambda p: p.azimuth)
    logger.info("Extracted %d horizon points from image %s", len(result), path)
    return result


def validate_image_format(path: str | Path) -> str | None:
    """Check that an image can be used for extraction.

    Returns:
        An error message, or ``None`` when the image is usable.
    """
    path = Path(path)
    if not path.is_file():
        return "Image file does not exist"
    if path.suffix.lower() not in SUPPORTED_EXTENSIONS:
        return "Unsupported image format. Supported formats: PNG, JPG, JPEG, BMP"

    try:
        with Image.open(path) as img:
            width, height = img.size
    except (OSError, UnidentifiedImageError) as exc:
        return f"Error validating image file: {exc}"

    if width < MIN_IMAGE_SIZE_PX or height < MIN_IMAGE_SIZE_PX:
        return f"Image is too small. Minimum size: {MIN_IMAGE_SIZE_PX}x{MIN_IMAGE_SIZE_PX} pixels"
    return None


def image_dimensions(path: str | Path) -> tuple[int, int]:
    """Return ``(width, height)`` of an image, or ``(0, 0)`` if it cannot be read."""
    try:
        with Image.open(path) as img:
            return img.size
    except (OSError, UnidentifiedImageError):
        return (0, 0)
