"""
Overpass API client package.

This package provides the HTTP client for the interpreter endpoint and the
structured errors it raises.
"""

from .errors import (
    OverpassError,
    QueryError,
    BadRequestError,
    RateLimitError,
    ServerError,
    GatewayTimeoutError,
    NetworkError,
    RequestTimeoutError,
    ResponseFormatError,
    InputError,
    OutputError,
    classify_http_error,
    create_user_friendly_message,
)
from .interpreter import OverpassClient, ResponseHandler, extract_error_text

__all__ = [
    # Errors
    "OverpassError",
    "QueryError",
    "BadRequestError",
    "RateLimitError",
    "ServerError",
    "GatewayTimeoutError",
    "NetworkError",
    "RequestTimeoutError",
    "ResponseFormatError",
    "InputError",
    "OutputError",
    "classify_http_error",
    "create_user_friendly_message",
    # Client
    "OverpassClient",
    "ResponseHandler",
    "extract_error_text",
]
