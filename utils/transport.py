"""
HTTP transport for the provider REST API.

Performs exactly one request per call using an httpx async client and
returns the status code with the body, parsed as JSON when possible. It
does not interpret status codes; that is the resilient client's job.
"""

import json
from typing import Any

import httpx
from loguru import logger

from models.platform import TransportResponse
from utils.errors import TransportError, TransportTimeout


class HttpxTransport:
    """
    Async HTTP transport backed by httpx.AsyncClient.

    Timeouts surface as TransportTimeout, connection-level failures as
    TransportError.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize transport.

        Args:
            timeout: Request timeout in seconds
            client: Optional preconfigured client (e.g. with a MockTransport)
        """
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"Accept": "application/json"},
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "HttpxTransport":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def request(
        self,
        method: str,
        url: str,
        token: str | None = None,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> TransportResponse:
        """
        Issue one HTTP request.

        Args:
            method: HTTP method
            url: Absolute URL
            token: Bearer token, if any
            params: Query parameters
            json_body: JSON request body

        Returns:
            TransportResponse with status code and parsed body

        Raises:
            TransportTimeout: If the request timed out
            TransportError: If no response was received
        """
        headers = {"Authorization": f"Bearer {token}"} if token else None

        try:
            response = await self._client.request(
                method, url, params=params, json=json_body, headers=headers
            )
        except httpx.TimeoutException as e:
            logger.warning(f"Timeout after {self.timeout}s: {method} {url}")
            raise TransportTimeout(f"{method} {url} timed out: {e}") from e
        except httpx.HTTPError as e:
            logger.warning(f"Transport error: {method} {url}: {e}")
            raise TransportError(f"{method} {url} failed: {e}") from e

        return TransportResponse(status_code=response.status_code, body=_parse_body(response))


def _parse_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return response.text


__all__ = ["HttpxTransport"]
