"""Configuration loading from environment, .env and an optional YAML file."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

DEFAULT_CONFIG_FILE = "config/server.yaml"


class _LayeredSettings(BaseSettings):
    """Environment wins over .env, which wins over the YAML file."""

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


class Settings(_LayeredSettings):
    """Server settings. The Companies House API key is mandatory."""

    # Upstream registry API
    companies_house_api_key: str = Field(min_length=1)
    companies_house_base_url: str = "https://api.company-information.service.gov.uk"
    upstream_timeout: float = 30.0

    # Transport selection
    mcp_mode: Literal["stdio", "http", "streamable"] = "stdio"

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    # Server info
    server_name: str = "companies-house-mcp"
    server_version: str = "1.0.0"

    # Host and port
    host: str = "0.0.0.0"
    port: int = 3000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        yaml_file=DEFAULT_CONFIG_FILE,
        extra="ignore",
        case_sensitive=False,
    )


class BridgeSettings(_LayeredSettings):
    """Settings for the stdio -> HTTP bridge process."""

    mcp_bridge_mode: Literal["streamable", "rest"] = "streamable"
    mcp_server_url: str = "http://localhost:3001"
    mcp_max_retry_attempts: int = Field(default=3, ge=0)
    mcp_reconnect_delay: int = Field(default=2000, ge=0)  # milliseconds
    mcp_request_timeout: float = Field(default=30.0, gt=0)
    mcp_shutdown_grace: float = Field(default=1.0, ge=0)

    log_level: str = "INFO"
    log_format: str = "json"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        yaml_file=DEFAULT_CONFIG_FILE,
        extra="ignore",
        case_sensitive=False,
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Raises pydantic's ValidationError when COMPANIES_HOUSE_API_KEY is unset.
    """
    return Settings()  # type: ignore[call-arg]


@lru_cache
def get_bridge_settings() -> BridgeSettings:
    """Get cached bridge settings instance."""
    return BridgeSettings()
