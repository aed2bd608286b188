"""Command-line interface for Overpass CLI."""

from .app import main

__all__ = ["main"]
