"""Shared test fixtures."""

import base64
import io
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pytest
from PIL import Image

from photo_studio.adapters.pillow_raster import PillowRaster
from photo_studio.config import Settings
from photo_studio.containers import AppContainer, build_services
from photo_studio.domain.errors import ImageGenerationError
from photo_studio.domain.models import UploadedImage
from photo_studio.services.generation import ImageGenerationClient, InlineImage


def png_base64(
    width: int = 40, height: int = 60, color: tuple[int, int, int] = (200, 40, 40)
) -> str:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode("ascii")


def upload(
    name: str,
    color: tuple[int, int, int] = (200, 40, 40),
    width: int = 40,
    height: int = 60,
) -> UploadedImage:
    return UploadedImage(name=name, data=png_base64(width, height, color))


def write_png(
    path: Path,
    color: tuple[int, int, int] = (90, 90, 90),
    width: int = 40,
    height: int = 60,
) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", (width, height), color).save(path, format="PNG")
    return path


@dataclass(frozen=True)
class ImageCall:
    prompt: str
    images: list[InlineImage]
    aspect_ratio: str | None


@dataclass
class FakeImageClient(ImageGenerationClient):
    """Fake image API returning solid PNGs and recording every call."""

    calls: list[ImageCall] = field(default_factory=list)
    fail_first_images: set[str] = field(default_factory=set)
    fail_all: bool = False
    width: int = 30
    height: int = 45
    closed: bool = False

    async def generate(
        self,
        prompt: str,
        images: Sequence[InlineImage],
        *,
        aspect_ratio: str | None = None,
        image_size: str | None = None,
    ) -> str:
        self.calls.append(ImageCall(prompt, list(images), aspect_ratio))
        if self.fail_all or (images and images[0].data in self.fail_first_images):
            raise ImageGenerationError("Image API 500: upstream failure")
        return png_base64(self.width, self.height, (20, 120, 220))

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    poses_dir = tmp_path / "poses"
    write_png(poses_dir / "pose-01.png", color=(10, 200, 10))
    return Settings(
        image_api_key="test-key",
        sessions_dir=tmp_path / "sessions",
        poses_dir=poses_dir,
        generation_concurrency=2,
    )


@pytest.fixture
def image_client() -> FakeImageClient:
    return FakeImageClient()


@pytest.fixture
def container(settings: Settings, image_client: FakeImageClient) -> AppContainer:
    return build_services(settings, image_client, PillowRaster(), image_client.close)
