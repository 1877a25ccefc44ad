"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (URLREADER__FETCHER__TIMEOUT_SECONDS=5)
  2. urlreader.yaml         (searched in cwd, then platform config dir)
  3. Hardcoded defaults

The config file is optional. Every field has a default.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from urlreader import __version__


def _find_config_file() -> str | None:
    """Return the path of the first urlreader.yaml found, or None."""
    candidates = [
        Path("urlreader.yaml"),
        Path(platformdirs.user_config_dir("urlreader")) / "urlreader.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class ServerSettings(BaseModel):
    transport: Literal["stdio", "http"] = "stdio"
    host: str = "127.0.0.1"
    port: int = 8080


class FetcherSettings(BaseModel):
    timeout_seconds: float = Field(default=10.0, gt=0)
    proxy_url: str | None = None
    user_agent: str = f"urlreader/{__version__}"
    max_connections: int = 10


class CacheSettings(BaseModel):
    ttl_seconds: float = Field(default=60.0, gt=0)
    cleanup_interval_seconds: float = Field(default=30.0, gt=0)


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: URLREADER__CACHE__TTL_SECONDS=120
        env_prefix="URLREADER__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    server: ServerSettings = ServerSettings()
    fetcher: FetcherSettings = FetcherSettings()
    cache: CacheSettings = CacheSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            YamlConfigSettingsSource(settings_cls),
        )
