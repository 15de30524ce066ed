"""Gemini ``generateContent`` client for image generation."""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass

import httpx

from photo_studio.domain.errors import ImageGenerationError
from photo_studio.services.generation import ImageGenerationClient, InlineImage

logger = logging.getLogger(__name__)


@dataclass
class HttpxGeminiImageClient(ImageGenerationClient):
    """HTTPX-backed client for Gemini-compatible image endpoints."""

    api_key: str
    endpoint: str
    http_client: httpx.AsyncClient
    aspect_ratio: str = "3:4"
    image_size: str = "2K"
    max_retries: int = 0
    retry_base_delay: float = 2.0
    timeout: float = 300.0

    @classmethod
    def create(  # noqa: PLR0913
        cls,
        api_key: str,
        endpoint: str,
        *,
        aspect_ratio: str = "3:4",
        image_size: str = "2K",
        max_retries: int = 0,
        retry_base_delay: float = 2.0,
        timeout: float = 300.0,
    ) -> "HttpxGeminiImageClient":
        """Create an image client with a managed httpx session."""
        return cls(
            api_key=api_key,
            endpoint=endpoint,
            http_client=httpx.AsyncClient(),
            aspect_ratio=aspect_ratio,
            image_size=image_size,
            max_retries=max_retries,
            retry_base_delay=retry_base_delay,
            timeout=timeout,
        )

    def build_payload(
        self,
        prompt: str,
        images: Sequence[InlineImage],
        *,
        aspect_ratio: str | None = None,
        image_size: str | None = None,
    ) -> dict[str, object]:
        parts: list[dict[str, object]] = [{"text": prompt}]
        parts.extend(
            {"inline_data": {"mime_type": image.mime_type, "data": image.data}}
            for image in images
        )
        return {
            "contents": [{"parts": parts}],
            "generationConfig": {
                "responseModalities": ["IMAGE"],
                "imageConfig": {
                    "aspectRatio": aspect_ratio or self.aspect_ratio,
                    "imageSize": image_size or self.image_size,
                },
            },
        }

    async def generate(
        self,
        prompt: str,
        images: Sequence[InlineImage],
        *,
        aspect_ratio: str | None = None,
        image_size: str | None = None,
    ) -> str:
        """Request one image, retrying with exponential backoff."""
        payload = self.build_payload(
            prompt, images, aspect_ratio=aspect_ratio, image_size=image_size
        )
        attempts = self.max_retries + 1
        last_error: Exception | None = None
        for attempt in range(attempts):
            if attempt:
                delay = self.retry_base_delay * 2 ** (attempt - 1)
                logger.info(
                    "Retry %d/%d after %.1fs", attempt, self.max_retries, delay
                )
                await asyncio.sleep(delay)
            try:
                return await self._request(payload)
            except (httpx.HTTPError, ImageGenerationError, ValueError) as exc:
                last_error = exc
                logger.warning("Image API attempt %d failed: %s", attempt + 1, exc)
        raise ImageGenerationError(
            f"Image API failed after {attempts} attempt(s): {last_error}"
        ) from last_error

    async def _request(self, payload: dict[str, object]) -> str:
        response = await self.http_client.post(
            self.endpoint,
            headers={"x-goog-api-key": self.api_key},
            json=payload,
            timeout=self.timeout,
        )
        if response.is_error:
            raise ImageGenerationError(
                f"Image API {response.status_code}: {response.text[:500]}"
            )
        return parse_image_response(response.json())

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def parse_image_response(payload: object) -> str:
    """Return the first inline image found in the first candidate."""
    candidates = payload.get("candidates") if isinstance(payload, dict) else None
    if not isinstance(candidates, list) or not candidates:
        raise ImageGenerationError("No candidates in image API response")
    candidate = candidates[0]
    content = candidate.get("content") if isinstance(candidate, dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list) or not parts:
        raise ImageGenerationError("No parts in image API response candidate")
    for part in parts:
        if not isinstance(part, dict):
            continue
        inline = part.get("inlineData") or part.get("inline_data")
        data = inline.get("data") if isinstance(inline, dict) else None
        if isinstance(data, str) and data:
            return data
    raise ImageGenerationError("No image data in image API response")
