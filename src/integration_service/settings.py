"""Application settings."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Core configuration for the Integration Service."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "integration-service"
    env: Literal["development", "staging", "production"] = "development"
    host: str = "0.0.0.0"
    port: int = 8003
    log_level: str = "INFO"

    cors_allowed_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    otel_exporter_endpoint: AnyHttpUrl | None = None

    # Webhooks: either a YAML file (hot-reloaded) or an inline JSON mapping
    webhooks_config_path: Path | None = None
    webhooks: dict[str, Any] = Field(default_factory=dict)
    webhook_dispatch_max_concurrency: int | None = Field(default=None, ge=1)

    # Directories the listing API may expose
    downloads_dir: Path = Path("/data/downloads")
    incomplete_dir: Path = Path("/data/incomplete")

    @property
    def allowed_directories(self) -> list[Path]:
        return [self.downloads_dir, self.incomplete_dir]


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()


settings = get_settings()
