"""
HTTP client for the Overpass API interpreter endpoint.

A query is sent as a single form-encoded POST to ``<server>/api/interpreter``.
Successful responses are handed to a caller supplied handler while the
connection is still open, so large results can be streamed. Error
responses are turned into structured errors.
"""

import asyncio
from typing import Awaitable, Callable, Optional
import logging

import aiohttp
import html2text

from overpass_cli import USER_AGENT
from .errors import NetworkError, RequestTimeoutError, classify_http_error

logger = logging.getLogger(__name__)

ResponseHandler = Callable[[aiohttp.ClientResponse], Awaitable[None]]

# Overpass error pages are short, keep at most this much of them
MAX_ERROR_TEXT_LENGTH = 2000


def extract_error_text(body: str, content_type: str) -> str:
    """Extract readable text from an error response body."""
    if "html" in content_type:
        converter = html2text.HTML2Text()
        converter.ignore_links = True
        converter.ignore_images = True
        converter.body_width = 0  # Don't wrap lines
        body = converter.handle(body)

    lines = [line.strip() for line in body.splitlines() if line.strip()]
    text = "\n".join(lines)
    if len(text) > MAX_ERROR_TEXT_LENGTH:
        text = text[:MAX_ERROR_TEXT_LENGTH] + "\n... (truncated)"
    return text


class OverpassClient:
    """
    Client for an Overpass API compatible server.

    Args:
        server: Base URL of the server, e.g. https://overpass-api.de
        timeout: Total request timeout in seconds, None for no limit
        user_agent: Value of the User-Agent header
    """

    def __init__(
        self,
        server: str,
        timeout: Optional[float] = None,
        user_agent: str = USER_AGENT,
    ):
        self.server = server.rstrip("/")
        self.timeout = timeout
        self.user_agent = user_agent

    @property
    def endpoint(self) -> str:
        """URL of the interpreter endpoint."""
        return f"{self.server}/api/interpreter"

    async def interpret(self, query: str, handler: ResponseHandler) -> str:
        """
        Send a query to the interpreter and pass the response to ``handler``.

        Args:
            query: Complete OverpassQL query
            handler: Coroutine function consuming the successful response

        Returns:
            Content type of the response

        Raises:
            OverpassError: On HTTP error status, network failure or timeout
        """
        headers = {"User-Agent": self.user_agent}
        timeout = aiohttp.ClientTimeout(total=self.timeout)

        logger.info(f"Sending query to {self.endpoint}")
        try:
            async with aiohttp.ClientSession(headers=headers, timeout=timeout) as session:
                async with session.post(self.endpoint, data={"data": query}) as response:
                    logger.debug(f"Response: HTTP {response.status} {response.content_type}")

                    if response.status >= 400:
                        body = await response.text(errors="replace")
                        raise classify_http_error(
                            response.status,
                            reason=response.reason,
                            body=extract_error_text(body, response.content_type),
                            retry_after=response.headers.get("Retry-After"),
                        )

                    await handler(response)
                    return response.content_type

        except asyncio.TimeoutError as e:
            raise RequestTimeoutError(
                f"Request timeout after {self.timeout} seconds",
                timeout_seconds=self.timeout,
                original_error=e,
            ) from e
        except aiohttp.ClientError as e:
            raise NetworkError(
                f"Could not reach {self.endpoint}: {e}",
                original_error=e,
            ) from e
