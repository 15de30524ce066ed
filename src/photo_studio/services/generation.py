"""Generation unit: reference files in, one generated image file out."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from photo_studio.services.files import mime_type_for, read_base64, write_base64

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InlineImage:
    """Base64 image payload sent alongside a prompt."""

    mime_type: str
    data: str


class ImageGenerationClient(Protocol):
    """Interface for the external image-generation API."""

    async def generate(
        self,
        prompt: str,
        images: Sequence[InlineImage],
        *,
        aspect_ratio: str | None = None,
        image_size: str | None = None,
    ) -> str:
        """Return the generated image as base64."""


async def load_inline_image(path: Path) -> InlineImage:
    return InlineImage(mime_type=mime_type_for(path), data=await read_base64(path))


@dataclass
class ImageRenderer:
    """Runs one prompt against reference files and stores the result."""

    client: ImageGenerationClient

    async def render(
        self,
        prompt: str,
        inputs: Sequence[Path],
        output: Path,
        *,
        aspect_ratio: str | None = None,
    ) -> Path:
        """Send ``inputs`` in order with ``prompt`` and write the image to ``output``.

        Client errors propagate unchanged; nothing is written unless the call
        returns an image.
        """
        images = [await load_inline_image(path) for path in inputs]
        logger.info(
            "Generating %s from %d reference image(s)", output.name, len(images)
        )
        encoded = await self.client.generate(prompt, images, aspect_ratio=aspect_ratio)
        await write_base64(encoded, output)
        logger.info("Saved %s", output)
        return output
