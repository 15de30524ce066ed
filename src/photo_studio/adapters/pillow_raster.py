"""Pillow implementation of the raster interface."""

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, ImageStat

from photo_studio.services.composition import RGB, WHITE, Raster


def flatten(image: Image.Image, background: RGB = WHITE) -> Image.Image:
    """Return an RGB copy with any transparency composited onto ``background``."""
    if image.mode in ("RGBA", "LA") or (
        image.mode == "P" and "transparency" in image.info
    ):
        rgba = image.convert("RGBA")
        canvas = Image.new("RGB", rgba.size, background)
        canvas.paste(rgba, mask=rgba.getchannel("A"))
        return canvas
    return image.convert("RGB")


@dataclass
class PillowRaster(Raster):
    """Raster backend writing high-quality JPEGs."""

    jpeg_quality: int = 95

    def open(self, path: Path) -> Image.Image:
        with Image.open(path) as image:
            image.load()
            return flatten(image)

    def size(self, image: Image.Image) -> tuple[int, int]:
        return image.size

    def resize(self, image: Image.Image, width: int, height: int) -> Image.Image:
        if image.size == (width, height):
            return image
        return image.resize((width, height), Image.Resampling.LANCZOS)

    def crop(
        self, image: Image.Image, box: tuple[int, int, int, int]
    ) -> Image.Image:
        return image.crop(box)

    def composite(
        self,
        width: int,
        height: int,
        background: RGB,
        placements: Sequence[tuple[Image.Image, int, int]],
    ) -> Image.Image:
        canvas = Image.new("RGB", (width, height), background)
        for image, left, top in placements:
            canvas.paste(image, (left, top))
        return canvas

    def mean_color(self, image: Image.Image) -> RGB:
        red, green, blue = ImageStat.Stat(image.convert("RGB")).mean[:3]
        return round(red), round(green), round(blue)

    def save(self, image: Image.Image, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        image.convert("RGB").save(path, format="JPEG", quality=self.jpeg_quality)
        return path
