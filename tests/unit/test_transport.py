"""
Unit Tests for the httpx Transport

Uses httpx.MockTransport so no network is touched.
"""

import httpx
import pytest

from utils.errors import TransportError, TransportTimeout
from utils.transport import HttpxTransport


def make_transport(handler):
    return HttpxTransport(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


class TestHttpxTransport:
    @pytest.mark.asyncio
    async def test_sends_bearer_token_params_and_json(self):
        """GIVEN a token, params and a body WHEN requesting THEN all reach the provider."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            seen["query"] = dict(request.url.params)
            seen["body"] = request.content
            return httpx.Response(201, json={"id": 9})

        async with make_transport(handler) as transport:
            response = await transport.request(
                "POST",
                "https://gitlab.example.com/api/v4/projects/1/hooks",
                token="glpat-abc",
                params={"ref": "master"},
                json_body={"url": "https://ci"},
            )

        assert response.status_code == 201
        assert response.body == {"id": 9}
        assert seen["auth"] == "Bearer glpat-abc"
        assert seen["query"] == {"ref": "master"}
        assert b'"url"' in seen["body"]

    @pytest.mark.asyncio
    async def test_no_token_no_authorization_header(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert "Authorization" not in request.headers
            return httpx.Response(200, json=[])

        async with make_transport(handler) as transport:
            response = await transport.request("GET", "https://gitlab.example.com/api/v4/users")

        assert response.body == []

    @pytest.mark.asyncio
    async def test_non_json_body_is_text(self):
        async with make_transport(lambda r: httpx.Response(502, text="Bad Gateway")) as transport:
            response = await transport.request("GET", "https://gitlab.example.com/")

        assert response.status_code == 502
        assert response.body == "Bad Gateway"
        assert not response.ok

    @pytest.mark.asyncio
    async def test_empty_body_is_none(self):
        async with make_transport(lambda r: httpx.Response(204)) as transport:
            response = await transport.request("DELETE", "https://gitlab.example.com/x")

        assert response.body is None

    @pytest.mark.asyncio
    async def test_timeout(self):
        """GIVEN a provider that times out WHEN requesting THEN TransportTimeout is raised."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("read timed out", request=request)

        async with make_transport(handler) as transport:
            with pytest.raises(TransportTimeout):
                await transport.request("GET", "https://gitlab.example.com/")

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with make_transport(handler) as transport:
            with pytest.raises(TransportError):
                await transport.request("GET", "https://gitlab.example.com/")
