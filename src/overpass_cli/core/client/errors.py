"""
Structured error system for the Overpass API client.

Every failure the CLI can hit (bad input, HTTP errors reported by the
server, network problems, malformed responses) is raised as a subclass of
OverpassError so the command layer can report it in one place.
"""

from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)


class OverpassError(Exception):
    """Base exception for all Overpass CLI errors."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.details = details or {}
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary representation."""
        return {
            "message": self.message,
            "status": self.status,
            "code": self.code,
            "details": self.details,
            "type": self.__class__.__name__
        }

    def __str__(self) -> str:
        parts = [self.message]
        if self.status:
            parts.append(f"(Status: {self.status})")
        if self.code:
            parts.append(f"(Code: {self.code})")
        return " ".join(parts)


class QueryError(OverpassError):
    """Error for invalid query input supplied by the user."""

    def __init__(
        self,
        message: str = "Invalid query",
        field: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, code="INVALID_QUERY", **kwargs)
        if field:
            self.details["field"] = field


class BadRequestError(OverpassError):
    """The server rejected the query, usually because of a syntax error."""

    def __init__(
        self,
        message: str = "Bad request",
        **kwargs
    ):
        super().__init__(message, status=400, code="BAD_REQUEST", **kwargs)


class RateLimitError(OverpassError):
    """The server refused the query because too many are running."""

    def __init__(
        self,
        message: str = "Too many requests",
        retry_after: Optional[int] = None,
        **kwargs
    ):
        super().__init__(message, status=429, code="RATE_LIMITED", **kwargs)
        if retry_after:
            self.details["retry_after"] = retry_after


class ServerError(OverpassError):
    """Error for server-side issues."""

    def __init__(
        self,
        message: str = "Server error",
        **kwargs
    ):
        super().__init__(message, code="SERVER_ERROR", **kwargs)
        if not kwargs.get("status"):
            self.status = 500


class GatewayTimeoutError(ServerError):
    """The server gave up on the query (504), typically under load."""

    def __init__(
        self,
        message: str = "Gateway timeout",
        **kwargs
    ):
        kwargs["status"] = 504
        super().__init__(message, **kwargs)
        self.code = "GATEWAY_TIMEOUT"


class NetworkError(OverpassError):
    """Error for network-related issues."""

    def __init__(
        self,
        message: str = "Network error",
        **kwargs
    ):
        super().__init__(message, code="NETWORK_ERROR", **kwargs)


class RequestTimeoutError(OverpassError):
    """Error for requests that exceed the configured timeout."""

    def __init__(
        self,
        message: str = "Request timeout",
        timeout_seconds: Optional[float] = None,
        **kwargs
    ):
        super().__init__(message, code="TIMEOUT_ERROR", **kwargs)
        if timeout_seconds:
            self.details["timeout_seconds"] = timeout_seconds


class ResponseFormatError(OverpassError):
    """The response body could not be decoded as its content type claims."""

    def __init__(
        self,
        message: str = "Malformed response",
        content_type: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, code="RESPONSE_FORMAT_ERROR", **kwargs)
        if content_type:
            self.details["content_type"] = content_type


class InputError(OverpassError):
    """The query could not be read, e.g. stdin is not valid UTF-8."""

    def __init__(
        self,
        message: str = "Could not read query",
        **kwargs
    ):
        super().__init__(message, code="INPUT_ERROR", **kwargs)


class OutputError(OverpassError):
    """Writing to stdout failed, typically because the reader went away."""

    def __init__(
        self,
        message: str = "Output stream closed",
        **kwargs
    ):
        super().__init__(message, code="OUTPUT_ERROR", **kwargs)


def classify_http_error(
    status: int,
    reason: Optional[str] = None,
    body: Optional[str] = None,
    retry_after: Optional[str] = None,
) -> OverpassError:
    """
    Classify an HTTP error response into a structured OverpassError.

    Args:
        status: HTTP status code of the response
        reason: HTTP reason phrase
        body: Error text extracted from the response body
        retry_after: Value of the Retry-After header, if any

    Returns:
        Classified OverpassError instance
    """
    message = f"HTTP {status}: {reason}" if reason else f"HTTP {status}"
    details: Dict[str, Any] = {}
    if body:
        details["body"] = body

    if status == 400:
        return BadRequestError(message, details=details)
    elif status == 429:
        delay = None
        if retry_after:
            try:
                delay = int(retry_after)
            except ValueError:
                logger.debug(f"Ignoring non-numeric Retry-After header: {retry_after}")
        return RateLimitError(message, retry_after=delay, details=details)
    elif status == 504:
        return GatewayTimeoutError(message, details=details)
    elif 500 <= status < 600:
        return ServerError(message, status=status, details=details)

    return OverpassError(message, status=status, code="HTTP_ERROR", details=details)


def create_user_friendly_message(error: OverpassError) -> str:
    """
    Create a user-friendly hint for an error.

    Args:
        error: The OverpassError to describe

    Returns:
        A one-line hint suitable for display below the error itself
    """
    if isinstance(error, BadRequestError):
        return "The server could not parse the query. Use --dry-run to inspect what was sent."

    elif isinstance(error, RateLimitError):
        retry_after = error.details.get("retry_after")
        if retry_after:
            return f"The server is busy. Please try again in {retry_after} seconds."
        return "The server is busy. Please try again later."

    elif isinstance(error, GatewayTimeoutError):
        return "The server is overloaded. Please try again later or narrow the query."

    elif isinstance(error, ServerError):
        return "A server error occurred. Please try again later."

    elif isinstance(error, NetworkError):
        return "Network error occurred. Please check the server URL and your connection."

    elif isinstance(error, RequestTimeoutError):
        return "The request timed out. Increase OVERPASS_CLI_TIMEOUT or narrow the query."

    return error.message
