from __future__ import annotations

import os
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DIRECTORY_URL = "https://jbdspower.in/LeafNetServer/api/user"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")
    """Application runtime configuration."""

    app_name: str = os.getenv("FT_APP_NAME", "FieldTrack")
    environment: str = os.getenv("FT_ENVIRONMENT", "development")
    host: str = os.getenv("FT_HOST", "127.0.0.1")
    port: int = int(os.getenv("FT_PORT", "8080"))

    directory_url: str = os.getenv("FT_DIRECTORY_URL", DEFAULT_DIRECTORY_URL)
    directory_timeout: float = float(os.getenv("FT_DIRECTORY_TIMEOUT", "15"))

    cors_origins: List[str] = Field(
        default_factory=lambda: [
            origin.strip() for origin in os.getenv("FT_CORS_ORIGINS", "*").split(",") if origin.strip()
        ]
    )

    log_level: str = os.getenv("FT_LOG_LEVEL", "INFO")
    id_padding: int = int(os.getenv("FT_ID_PADDING", "3"))

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: str | List[str]) -> List[str]:
        if isinstance(value, list):
            return value
        if not value:
            return []
        return [origin.strip() for origin in value.split(",") if origin.strip()]

    @field_validator("id_padding")
    @classmethod
    def _positive_padding(cls, value: int) -> int:
        return max(1, value)


settings = Settings()
