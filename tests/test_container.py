"""Tests for container wiring."""

import asyncio

from photo_studio.adapters.gemini_image_client import HttpxGeminiImageClient
from photo_studio.containers import AppContainer, build_container


def test_build_container_creates_services(settings) -> None:
    container = build_container(settings)

    assert isinstance(container.image_client, HttpxGeminiImageClient)
    assert container.image_client.api_key == "test-key"
    assert set(container.pipelines) == {"retouch", "clothing-detail"}
    assert container.detail_page_service.page_width == 790
    assert container.model_image_service.concurrency == 2

    asyncio.run(container.close_resources())

    assert container.image_client.http_client.is_closed


def test_services_share_one_session_store(container: AppContainer) -> None:
    sessions = container.session_service

    assert container.model_image_service.sessions is sessions
    assert container.detail_page_service.sessions is sessions
    assert all(service.sessions is sessions for service in container.pipelines.values())
