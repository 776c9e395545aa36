"""
Configuration loading and validation.

The client reads its configuration from a YAML file. Tokens are resolved
from the environment and never stored in config files. Without a file,
the configuration is assembled from ``PANDORO_*`` environment variables.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoggingConfig(BaseModel):
    level: str = "info"
    format: Literal["json", "text"] = "text"


class PandoroConfig(BaseModel):
    host: str
    user_id: Optional[str] = None
    token_env: str = "PANDORO_TOKEN"
    verify_tls: bool = True
    request_timeout_seconds: int = 30
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def token(self) -> str | None:
        return os.environ.get(self.token_env)


class Settings(BaseSettings):
    """Environment overrides for the Pandoro client."""

    model_config = SettingsConfigDict(env_prefix="PANDORO_", env_file=".env", extra="ignore")

    config_path: Optional[str] = None
    host: Optional[str] = None
    user_id: Optional[str] = None
    log_level: str = "info"


@lru_cache
def get_settings() -> Settings:
    return Settings()


def load_config(path: str | Path) -> PandoroConfig:
    """Load and validate client configuration from a YAML file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    return PandoroConfig.model_validate(raw)


def resolve_config(path: str | Path | None = None, settings: Settings | None = None) -> PandoroConfig:
    """Pick the configuration from ``path``, the configured file or the environment."""
    settings = settings or get_settings()
    path = path or settings.config_path
    if path:
        return load_config(path)

    if not settings.host:
        raise ValueError("No Pandoro host configured: set PANDORO_HOST or provide a config file")
    return PandoroConfig(
        host=settings.host,
        user_id=settings.user_id,
        logging=LoggingConfig(level=settings.log_level),
    )
