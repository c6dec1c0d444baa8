"""Environment settings layered on top of ``config.toml``."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .config import AppConfig, load_config

DEFAULT_CONFIG_PATH = Path("config.toml")
ENV_PREFIX = "PDF2IMG_"


class Settings(BaseSettings):
    """Application runtime settings sourced from environment variables."""

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, env_file=".env", extra="ignore")

    config_path: Path = DEFAULT_CONFIG_PATH
    enable_api: bool | None = None
    port: int | None = Field(default=None, validation_alias=AliasChoices("PDF2IMG_PORT", "PORT"))
    cors_allow_origins: str | None = Field(
        default=None,
        validation_alias=AliasChoices("PDF2IMG_CORS_ALLOW_ORIGINS", "ALLOWED_ORIGINS"),
    )

    # Object storage
    storage_backend: str | None = None
    s3_bucket: str | None = None
    s3_access_key_id: str | None = None
    s3_secret_access_key: str | None = None
    s3_endpoint_url: str | None = None
    s3_region: str | None = None
    s3_public_base_url: str | None = None

    @property
    def cors_origin_list(self) -> list[str] | None:
        if self.cors_allow_origins is None:
            return None
        if self.cors_allow_origins.strip() == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]

    def apply(self, config: AppConfig) -> AppConfig:
        """Overlay environment values onto a loaded configuration."""

        if self.enable_api is not None:
            config.runtime.enable_api = self.enable_api
        if self.port is not None:
            config.api.port = self.port
        origins = self.cors_origin_list
        if origins is not None:
            config.api.cors_origins = tuple(origins)
        if self.storage_backend:
            config.storage.backend = self.storage_backend
        if self.s3_bucket:
            config.storage.bucket = self.s3_bucket
        if self.s3_endpoint_url:
            config.storage.endpoint_url = self.s3_endpoint_url
        if self.s3_region:
            config.storage.region = self.s3_region
        if self.s3_public_base_url:
            config.storage.public_base_url = self.s3_public_base_url
        return config

    def load_app_config(self) -> AppConfig:
        return self.apply(load_config(self.config_path))


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


__all__ = ["DEFAULT_CONFIG_PATH", "ENV_PREFIX", "Settings", "get_settings"]
