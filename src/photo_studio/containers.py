"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from photo_studio.adapters.file_session_repository import FileSessionRepository
from photo_studio.adapters.gemini_image_client import HttpxGeminiImageClient
from photo_studio.adapters.pillow_raster import PillowRaster
from photo_studio.config import Settings
from photo_studio.services.composition import Raster
from photo_studio.services.detail_page import DetailPageService
from photo_studio.services.generation import ImageGenerationClient, ImageRenderer
from photo_studio.services.model_images import ModelImageService
from photo_studio.services.poses import PoseLibrary
from photo_studio.services.reference_pipeline import (
    PROFILES,
    ReferencePipelineService,
)
from photo_studio.services.sessions import SessionLocks, SessionService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    image_client: ImageGenerationClient
    raster: Raster
    session_service: SessionService
    session_locks: SessionLocks
    model_image_service: ModelImageService
    detail_page_service: DetailPageService
    pipelines: dict[str, ReferencePipelineService]
    close_resources: Callable[[], Awaitable[None]]


def build_services(
    settings: Settings,
    image_client: ImageGenerationClient,
    raster: Raster,
    close_resources: Callable[[], Awaitable[None]],
) -> AppContainer:
    """Wire services around already constructed adapters."""
    session_service = SessionService(FileSessionRepository(settings.sessions_dir))
    renderer = ImageRenderer(image_client)
    concurrency = settings.generation_concurrency
    model_image_service = ModelImageService(
        sessions=session_service,
        renderer=renderer,
        poses=PoseLibrary(settings.poses_dir),
        concurrency=concurrency,
    )
    detail_page_service = DetailPageService(
        sessions=session_service,
        renderer=renderer,
        raster=raster,
        concurrency=concurrency,
        page_width=settings.detail_page_width,
    )
    pipelines = {
        slug: ReferencePipelineService(
            profile=profile,
            sessions=session_service,
            renderer=renderer,
            raster=raster,
            concurrency=concurrency,
            match_reference_size=settings.match_reference_size,
        )
        for slug, profile in PROFILES.items()
    }
    return AppContainer(
        settings=settings,
        image_client=image_client,
        raster=raster,
        session_service=session_service,
        session_locks=SessionLocks(),
        model_image_service=model_image_service,
        detail_page_service=detail_page_service,
        pipelines=pipelines,
        close_resources=close_resources,
    )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    image_client = HttpxGeminiImageClient.create(
        api_key=resolved_settings.image_api_key,
        endpoint=resolved_settings.image_api_endpoint,
        aspect_ratio=resolved_settings.aspect_ratio,
        image_size=resolved_settings.image_size,
        max_retries=resolved_settings.image_api_max_retries,
        retry_base_delay=resolved_settings.image_api_retry_base_delay,
        timeout=resolved_settings.image_api_timeout,
    )

    async def close_resources() -> None:
        await image_client.close()

    return build_services(
        resolved_settings, image_client, PillowRaster(), close_resources
    )
