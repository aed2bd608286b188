"""
Configuration settings for Overpass CLI.

This module provides configuration management using Pydantic settings
with support for environment variables and an optional .env file.
"""

from typing import Any, Dict
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from overpass_cli.core.query import OutputMode

DEFAULT_SERVER = "https://overpass-api.de"


class OverpassCliSettings(BaseSettings):
    """
    Main configuration settings for Overpass CLI.

    Settings are loaded from multiple sources in order of preference:
    1. Environment variables (prefixed with OVERPASS_CLI_)
    2. The .env file in the working directory
    3. Default values

    Command-line flags override all of them.
    """

    model_config = SettingsConfigDict(
        env_prefix="OVERPASS_CLI_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server Configuration
    server: str = Field(
        default=DEFAULT_SERVER,
        description="Base URL of the Overpass API server"
    )

    timeout: float = Field(
        default=300.0,
        description="Total request timeout in seconds",
        gt=0
    )

    # Query Configuration
    default_output: OutputMode = Field(
        default=OutputMode.BODY,
        description="Verbosity of the out statement appended to queries without one"
    )

    # Logging Configuration
    log_level: str = Field(
        default="WARNING",
        description="Logging level"
    )

    @field_validator("server")
    @classmethod
    def validate_server(cls, v: str) -> str:
        """Validate the server URL and drop any trailing slash."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Invalid server URL '{v}'. It must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level '{v}'. Valid levels: {', '.join(sorted(valid_levels))}")
        return v_upper

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to a plain dictionary."""
        return self.model_dump(mode="json")


def get_settings(**overrides: Any) -> OverpassCliSettings:
    """
    Get the current Overpass CLI settings.

    Args:
        **overrides: Values taking precedence over the environment, such as
            those given on the command line. ``None`` values are ignored.

    Returns:
        Validated settings
    """
    values = {key: value for key, value in overrides.items() if value is not None}
    return OverpassCliSettings(**values)
