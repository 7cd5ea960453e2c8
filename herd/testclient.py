"""Simple in-memory HTTP client for herd handlers."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Mapping
from urllib.parse import parse_qs, urlsplit

import msgpack

from .config import Settings
from .handler import Handler
from .pipeline import Pipeline


@dataclass
class TestResponse:
    """Container for HTTP response data."""

    __test__ = False

    status_code: int
    headers: Mapping[str, str]
    content: bytes

    @property
    def text(self) -> str:
        return self.content.decode()

    def json(self) -> Any:
        """Return the body parsed as JSON."""
        return json.loads(self.content)

    def msgpack(self) -> Any:
        """Return the body parsed as MsgPack."""
        return msgpack.unpackb(self.content, raw=False)


class MemoryTransport:
    """Transport that keeps the request and the reply in memory."""

    def __init__(
        self,
        method: str,
        path: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: bytes = b"",
        query: Mapping[str, Any] | None = None,
        bindings: Mapping[str, Any] | None = None,
        version: str = "HTTP/1.1",
        peer: str | None = "testclient",
    ) -> None:
        self.method = method
        self.path = path
        self.version = version
        self.peer = peer
        self.headers = {k.lower(): v for k, v in (headers or {}).items()}
        self.query = dict(query or {})
        self.bindings = dict(bindings or {})
        self.has_body = bool(body)
        self._body = body
        self.status_code: int | None = None
        self.reply_headers: dict[str, str] = {}
        self.reply_body = b""

    async def read_body(self) -> bytes:
        return self._body

    async def reply(
        self, status_code: int, headers: Mapping[str, str], body: bytes
    ) -> None:
        if self.status_code is not None:
            raise RuntimeError("response already sent")
        self.status_code = status_code
        self.reply_headers = dict(headers)
        self.reply_body = bytes(body)


class TestClient:
    """Execute requests against a handler without a server."""

    __test__ = False  # prevent Pytest from treating this as a test case

    def __init__(
        self,
        handler: Handler,
        options: Any = None,
        *,
        settings: Settings | None = None,
    ) -> None:
        self.pipeline = Pipeline(handler, options, settings=settings)

    def request(
        self,
        method: str,
        path: str = "/",
        *,
        body: bytes | None = None,
        json_body: Any = None,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
        bindings: Mapping[str, Any] | None = None,
    ) -> TestResponse:
        """Send an HTTP request and return the response."""
        if body is not None and json_body is not None:
            raise ValueError("provide either json_body or body")
        body_bytes = (
            body
            if body is not None
            else json.dumps(json_body).encode()
            if json_body is not None
            else b""
        )
        parts = urlsplit(path)
        query: dict[str, Any] = {
            k: (v[0] if len(v) == 1 else v)
            for k, v in parse_qs(parts.query, keep_blank_values=True).items()
        }
        query.update(params or {})
        transport = MemoryTransport(
            method,
            parts.path or "/",
            headers=headers,
            body=body_bytes,
            query=query,
            bindings=bindings,
        )
        asyncio.run(self.pipeline.handle(transport))
        assert transport.status_code is not None
        return TestResponse(
            transport.status_code, transport.reply_headers, transport.reply_body
        )

    def get(self, path: str = "/", **kwargs: Any) -> TestResponse:
        """Send a GET request."""
        return self.request("GET", path, **kwargs)

    def post(self, path: str = "/", **kwargs: Any) -> TestResponse:
        """Send a POST request."""
        return self.request("POST", path, **kwargs)

    def put(self, path: str = "/", **kwargs: Any) -> TestResponse:
        return self.request("PUT", path, **kwargs)

    def patch(self, path: str = "/", **kwargs: Any) -> TestResponse:
        return self.request("PATCH", path, **kwargs)

    def delete(self, path: str = "/", **kwargs: Any) -> TestResponse:
        return self.request("DELETE", path, **kwargs)


__all__ = ["MemoryTransport", "TestClient", "TestResponse"]
