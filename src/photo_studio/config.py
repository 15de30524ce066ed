"""Application configuration."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

DEFAULT_IMAGE_API_ENDPOINT = (
    "https://api.laozhang.ai/v1beta/models/"
    "gemini-3-pro-image-preview:generateContent"
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    image_api_key: str
    image_api_endpoint: str = DEFAULT_IMAGE_API_ENDPOINT
    image_api_max_retries: int = Field(default=0, ge=0)
    image_api_retry_base_delay: float = Field(default=2.0, ge=0.0)
    image_api_timeout: float = Field(default=300.0, gt=0.0)
    aspect_ratio: str = "3:4"
    image_size: str = "2K"
    generation_concurrency: int = Field(default=3, ge=1)
    match_reference_size: bool = False
    sessions_dir: Path = Path("output/sessions")
    poses_dir: Path = Path("poses")
    detail_page_width: int = Field(default=790, gt=0)
    host: str = "127.0.0.1"
    port: int = 3000
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
