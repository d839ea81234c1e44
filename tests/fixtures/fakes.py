"""
In-memory collaborators for adapter and breaker tests.

FakeTransport stands in for HttpxTransport, FakeClock for time.monotonic.
GatedTransport holds requests in flight so concurrent calls can overlap.
"""

import asyncio
from types import SimpleNamespace
from typing import Any

from models.platform import TransportResponse

GITLAB_HOST = "gitlab.example.com"
API_URL = f"https://{GITLAB_HOST}/api/v4"


class FakeTransport:
    """
    In-memory transport keyed by (method, API path).

    Each route holds a queue of responses or exceptions; the last entry is
    repeated once the queue is down to one. Unknown routes answer 404.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[Any]] = {}
        self.calls: list[SimpleNamespace] = []
        self.closed = False

    def add(
        self,
        method: str,
        path: str,
        body: Any = None,
        status_code: int = 200,
        error: Exception | None = None,
    ) -> "FakeTransport":
        item = error if error is not None else TransportResponse(status_code=status_code, body=body)
        self.routes.setdefault((method, path), []).append(item)
        return self

    def calls_to(self, method: str, path: str) -> list[SimpleNamespace]:
        return [c for c in self.calls if c.method == method and c.path == path]

    async def request(
        self,
        method: str,
        url: str,
        token: str | None = None,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> TransportResponse:
        path = url.split("/api/v4", 1)[-1]
        self.calls.append(
            SimpleNamespace(
                method=method, url=url, path=path, token=token, params=params, json_body=json_body
            )
        )

        queue = self.routes.get((method, path))
        if not queue:
            return TransportResponse(status_code=404, body={"message": "404 Not Found"})

        item = queue[0] if len(queue) == 1 else queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self) -> None:
        self.closed = True


class GatedTransport(FakeTransport):
    """FakeTransport whose requests wait at a gate while it is held."""

    def __init__(self) -> None:
        super().__init__()
        self.gate = asyncio.Event()
        self.gate.set()
        self.waiting = 0

    def hold(self) -> None:
        self.gate.clear()

    def release(self) -> None:
        self.gate.set()

    async def request(
        self,
        method: str,
        url: str,
        token: str | None = None,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> TransportResponse:
        self.waiting += 1
        try:
            await self.gate.wait()
        finally:
            self.waiting -= 1
        return await super().request(method, url, token=token, params=params, json_body=json_body)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


async def no_sleep(_seconds: float) -> None:
    return None
