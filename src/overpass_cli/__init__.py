"""
Overpass CLI - a command-line client for Overpass API servers.

This package builds OverpassQL queries from command-line flags, sends them
to an Overpass API instance and writes the response to standard output.
"""

__version__ = "0.1.0"
__author__ = "Overpass CLI Team"
__license__ = "Apache-2.0"

from typing import Final

# Package metadata
VERSION: Final[str] = __version__
PACKAGE_NAME: Final[str] = "overpass-cli"
USER_AGENT: Final[str] = f"{PACKAGE_NAME}/{VERSION}"

__all__ = [
    "__version__",
    "VERSION",
    "PACKAGE_NAME",
    "USER_AGENT",
]
