"""
Configuration package for Overpass CLI.

Settings are read from OVERPASS_CLI_* environment variables and an
optional .env file; command-line flags take precedence.
"""

from .settings import OverpassCliSettings, get_settings

__all__ = ["OverpassCliSettings", "get_settings"]
