"""Tests for the HTTPX image-generation client."""

import asyncio
import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from photo_studio.adapters.gemini_image_client import (
    HttpxGeminiImageClient,
    parse_image_response,
)
from photo_studio.domain.errors import ImageGenerationError
from photo_studio.services.generation import InlineImage

ENDPOINT = "https://images.example.test/v1beta/models/image:generateContent"
IMAGES = [
    InlineImage(mime_type="image/png", data="bW9kZWw="),
    InlineImage(mime_type="image/jpeg", data="Y2xvdGhlcw=="),
]


def _image_response(key: str = "inlineData") -> dict[str, object]:
    return {
        "candidates": [
            {
                "content": {
                    "parts": [
                        {"text": "Here you go"},
                        {key: {"mimeType": "image/png", "data": "cmVzdWx0"}},
                    ]
                }
            }
        ]
    }


def _client(
    handler: Callable[[httpx.Request], httpx.Response], **kwargs: Any
) -> HttpxGeminiImageClient:
    return HttpxGeminiImageClient(
        api_key="secret",
        endpoint=ENDPOINT,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        **kwargs,
    )


def test_generate_sends_prompt_images_and_config() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_image_response())

    client = _client(handler)

    result = asyncio.run(client.generate("Dress the model", IMAGES))

    assert result == "cmVzdWx0"
    request = seen[0]
    assert str(request.url) == ENDPOINT
    assert request.headers["x-goog-api-key"] == "secret"
    payload = json.loads(request.content.decode())
    parts = payload["contents"][0]["parts"]
    assert parts[0] == {"text": "Dress the model"}
    assert parts[1] == {"inline_data": {"mime_type": "image/png", "data": "bW9kZWw="}}
    assert parts[2]["inline_data"]["mime_type"] == "image/jpeg"
    assert payload["generationConfig"] == {
        "responseModalities": ["IMAGE"],
        "imageConfig": {"aspectRatio": "3:4", "imageSize": "2K"},
    }


def test_generate_aspect_ratio_override() -> None:
    payloads: list[dict[str, object]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        payloads.append(json.loads(request.content.decode()))
        return httpx.Response(200, json=_image_response())

    client = _client(handler, image_size="1K")

    asyncio.run(client.generate("p", IMAGES, aspect_ratio="3:2"))

    assert payloads[0]["generationConfig"]["imageConfig"] == {
        "aspectRatio": "3:2",
        "imageSize": "1K",
    }


def test_generate_retries_then_succeeds() -> None:
    attempts = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal attempts
        attempts += 1
        if attempts < 3:
            return httpx.Response(503, text="overloaded")
        return httpx.Response(200, json=_image_response("inline_data"))

    client = _client(handler, max_retries=2, retry_base_delay=0)

    assert asyncio.run(client.generate("p", IMAGES)) == "cmVzdWx0"
    assert attempts == 3


def test_generate_gives_up_after_retries() -> None:
    attempts = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal attempts
        attempts += 1
        return httpx.Response(500, text="boom")

    client = _client(handler, max_retries=1, retry_base_delay=0)

    with pytest.raises(ImageGenerationError, match="after 2 attempt"):
        asyncio.run(client.generate("p", IMAGES))
    assert attempts == 2


def test_generate_without_retries_reports_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, text="quota exhausted")

    client = _client(handler)

    with pytest.raises(ImageGenerationError, match="429: quota exhausted"):
        asyncio.run(client.generate("p", IMAGES))


def test_response_without_image_is_an_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, json={"candidates": [{"content": {"parts": [{"text": "no"}]}}]}
        )

    client = _client(handler)

    with pytest.raises(ImageGenerationError, match="No image data"):
        asyncio.run(client.generate("p", IMAGES))


@pytest.mark.parametrize(
    ("payload", "message"),
    [
        ({}, "No candidates"),
        ({"candidates": []}, "No candidates"),
        ({"candidates": [{"content": {"parts": []}}]}, "No parts"),
        ({"candidates": ["oops"]}, "No parts"),
        ({"candidates": [{"content": "oops"}]}, "No parts"),
        (
            {"candidates": [{"content": {"parts": ["x", {"inlineData": "y"}]}}]},
            "No image data",
        ),
        ([], "No candidates"),
    ],
)
def test_parse_image_response_errors(payload: object, message: str) -> None:
    with pytest.raises(ImageGenerationError, match=message):
        parse_image_response(payload)


def test_close_closes_http_client() -> None:
    client = _client(lambda request: httpx.Response(200))

    asyncio.run(client.close())

    assert client.http_client.is_closed


def test_malformed_response_is_retried_as_generation_error() -> None:
    attempts = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal attempts
        attempts += 1
        return httpx.Response(200, json={"candidates": [None]})

    client = _client(handler, max_retries=1, retry_base_delay=0)

    with pytest.raises(ImageGenerationError, match="No parts"):
        asyncio.run(client.generate("p", IMAGES))
    assert attempts == 2
