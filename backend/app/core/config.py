"""
Application configuration utilities.

This module defines the ``Settings`` class used throughout the service for
environment variables and provides a helper to load YAML files such as the
identities file used for bearer-token authentication.
"""

from __future__ import annotations

import os
from functools import lru_cache

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration loaded from environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API server configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: str = ""
    rate_limit_per_min: int = 60
    log_level: str = "INFO"

    # GEMINI API key (required for every AI-assisted endpoint)
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-1.5-flash"
    gemini_image_model: str = "imagen-3.0-generate-002"
    # Upper bound applied by callers around each generation call
    generation_timeout_seconds: float = 30.0

    # Document store file; ``None`` keeps documents in memory only
    store_path: str | None = "data/store.json"
    identities_path: str = "configs/identities.yaml"
    default_low_stock_threshold: int = 10

    def cors_origin_list(self) -> list[str]:
        origins = [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]
        return origins or ["*"]


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    """Return a cached instance of ``Settings``.

    Using a cache ensures that environment variables are only read once.
    """
    return Settings()


def load_yaml(file_path: str) -> dict:
    """Load a YAML file from the given path and return its contents.

    If the file does not exist, an empty dictionary is returned.
    """
    if not os.path.exists(file_path):
        return {}
    with open(file_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}
