"""Core functionality: query construction and the Overpass API client."""
