"""Test doubles for Redis and the remote favicon sources."""

from __future__ import annotations

from datetime import datetime, timezone

import httpx
from redis.exceptions import ConnectionError as RedisConnectionError

NOW = datetime(2026, 10, 16, 12, 0, tzinfo=timezone.utc)
ICON_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 256


class InMemoryRedis:
    """Lightweight async Redis double covering the commands the store uses."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}

    async def ping(self) -> bool:
        return True

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def delete(self, *keys: str) -> None:
        for key in keys:
            self.data.pop(key, None)

    async def aclose(self) -> None:
        return None


class UnreachableRedis(InMemoryRedis):
    """Redis double whose every command fails as if the server went away."""

    async def ping(self) -> bool:
        raise RedisConnectionError("Connection refused")

    async def get(self, key: str) -> str | None:
        raise RedisConnectionError("Connection refused")

    async def set(self, key: str, value: str) -> None:
        raise RedisConnectionError("Connection refused")

    async def delete(self, *keys: str) -> None:
        raise RedisConnectionError("Connection refused")


class IconServer:
    """``httpx.MockTransport`` handler serving canned responses by URL.

    Unknown URLs answer 404; every requested URL is recorded in order.
    """

    def __init__(self, responses: dict[str, httpx.Response] | None = None) -> None:
        self.responses = dict(responses or {})
        self.requested: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requested.append(url)
        response = self.responses.get(url)
        if response is None:
            return httpx.Response(404)
        # Fresh copy so one canned response can be served repeatedly.
        return httpx.Response(
            response.status_code, headers=response.headers, content=response.content
        )

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self), follow_redirects=True)
