"""Utility helpers for Overpass CLI."""
