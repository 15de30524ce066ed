"""Deterministic raster compositions built on a small raster interface.

Everything here is synchronous; async callers run it through
``asyncio.to_thread``.
"""

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)

RGB = tuple[int, int, int]
WHITE: RGB = (255, 255, 255)

# Backend-specific image handle.
ImageHandle = Any


class Raster(Protocol):
    """Interface for the raster backend."""

    def open(self, path: Path) -> ImageHandle:
        """Load an image as RGB."""

    def size(self, image: ImageHandle) -> tuple[int, int]:
        """Return ``(width, height)``."""

    def resize(self, image: ImageHandle, width: int, height: int) -> ImageHandle:
        """Return the image scaled to exactly ``width x height``."""

    def crop(
        self, image: ImageHandle, box: tuple[int, int, int, int]
    ) -> ImageHandle:
        """Return the ``(left, top, right, bottom)`` region."""

    def composite(
        self,
        width: int,
        height: int,
        background: RGB,
        placements: Sequence[tuple[ImageHandle, int, int]],
    ) -> ImageHandle:
        """Paste images at ``(x, y)`` offsets onto a solid canvas."""

    def mean_color(self, image: ImageHandle) -> RGB:
        """Average colour of the whole image."""

    def save(self, image: ImageHandle, path: Path) -> Path:
        """Write a JPEG, creating parent directories."""


def scaled_height(width: int, height: int, target_width: int) -> int:
    return max(1, round(height * target_width / width))


def stitch_vertical(
    raster: Raster, paths: Sequence[Path], width: int, output: Path
) -> tuple[int, int]:
    """Scale every image to ``width`` and stack them top to bottom on white.

    Returns the output dimensions.
    """
    if not paths:
        raise ValueError("Nothing to stitch")
    placements = []
    offset = 0
    for path in paths:
        image = raster.open(path)
        source_width, source_height = raster.size(image)
        height = scaled_height(source_width, source_height, width)
        placements.append((raster.resize(image, width, height), 0, offset))
        offset += height
    raster.save(raster.composite(width, offset, WHITE, placements), output)
    logger.info(
        "Stitched %d image(s) into %s (%dx%d)", len(paths), output, width, offset
    )
    return width, offset


def fit_inside(width: int, height: int, bound: int) -> tuple[int, int]:
    """Largest size with the same aspect that fits in ``bound x bound``."""
    scale = min(bound / width, bound / height)
    return max(1, round(width * scale)), max(1, round(height * scale))


def edge_color(raster: Raster, image: ImageHandle, sample_width: int) -> RGB:
    """Average of the mean colours of the left and right edge strips."""
    width, height = raster.size(image)
    strip = min(sample_width, width)
    left = raster.mean_color(raster.crop(image, (0, 0, strip, height)))
    right = raster.mean_color(raster.crop(image, (width - strip, 0, width, height)))
    return (
        round((left[0] + right[0]) / 2),
        round((left[1] + right[1]) / 2),
        round((left[2] + right[2]) / 2),
    )


def letterbox_square(
    raster: Raster,
    source: Path,
    output: Path,
    size: int = 800,
    sample_width: int = 40,
) -> Path:
    """Fit the whole image into a square canvas filled with its edge colour."""
    image = raster.open(source)
    width, height = fit_inside(*raster.size(image), size)
    resized = raster.resize(image, width, height)
    background = edge_color(raster, resized, sample_width)
    left = (size - width) // 2
    top = (size - height) // 2
    canvas = raster.composite(size, size, background, [(resized, left, top)])
    raster.save(canvas, output)
    return output


def crop_box(
    width: int, height: int, target_width: int, target_height: int
) -> tuple[int, int, int, int]:
    """Centred crop box with the target aspect ratio."""
    ratio = target_width / target_height
    crop_width = min(width, round(height * ratio))
    crop_height = min(height, round(width / ratio))
    left = max(0, (width - crop_width) // 2)
    top = max(0, (height - crop_height) // 2)
    return left, top, left + crop_width, top + crop_height


def crop_to_ratio(
    raster: Raster, source: Path, output: Path, width: int, height: int
) -> Path:
    """Centre crop to ``width/height`` then resize to exactly that size."""
    if width <= 0 or height <= 0:
        raise ValueError("Target dimensions must be positive")
    image = raster.open(source)
    cropped = raster.crop(image, crop_box(*raster.size(image), width, height))
    raster.save(raster.resize(cropped, width, height), output)
    return output


def match_size(raster: Raster, output: Path, reference: Path) -> tuple[int, int]:
    """Resize ``output`` in place to the dimensions of ``reference``."""
    width, height = raster.size(raster.open(reference))
    image = raster.open(output)
    if raster.size(image) != (width, height):
        raster.save(raster.resize(image, width, height), output)
    return width, height


def aspect_ratio_for(width: int, height: int) -> str:
    """API aspect-ratio hint matching an image's orientation."""
    if width > height:
        return "3:2"
    if height > width:
        return "2:3"
    return "1:1"
