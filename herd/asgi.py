"""ASGI transport for the herd pipeline.

Routing stays outside: mount :class:`HerdASGI` behind any ASGI router that
stores path parameters in ``scope["path_params"]``.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, Mapping
from urllib.parse import parse_qs

from .config import Settings
from .handler import Handler
from .pipeline import Pipeline

Scope = Dict[str, Any]
Receive = Callable[[], Awaitable[Dict[str, Any]]]
Send = Callable[[Dict[str, Any]], Awaitable[None]]

_BODY_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


def _parse_query(raw: bytes) -> dict[str, Any]:
    parsed = parse_qs(raw.decode("latin-1"), keep_blank_values=True)
    return {k: (v[0] if len(v) == 1 else v) for k, v in parsed.items()}


class ASGITransport:
    """Adapt one ASGI ``http`` exchange to the pipeline's transport contract."""

    def __init__(self, scope: Scope, receive: Receive, send: Send) -> None:
        self._receive = receive
        self._send = send
        self.method = str(scope.get("method", "GET")).upper()
        self.path = str(scope.get("path", "/"))
        self.version = f"HTTP/{scope.get('http_version', '1.1')}"
        client = scope.get("client")
        self.peer = str(client[0]) if client else None
        self.headers = {
            bytes(k).decode("latin-1").lower(): bytes(v).decode("latin-1")
            for k, v in scope.get("headers", [])
        }
        self.bindings = dict(scope.get("path_params") or {})
        self.query = _parse_query(scope.get("query_string", b""))
        length = self.headers.get("content-length", "")
        if length.isdigit():
            self.has_body = int(length) > 0
        else:
            self.has_body = (
                "transfer-encoding" in self.headers or self.method in _BODY_METHODS
            )

    async def read_body(self) -> bytes:
        chunks: list[bytes] = []
        while True:
            message = await self._receive()
            if message["type"] == "http.disconnect":
                break
            chunks.append(message.get("body", b""))
            if not message.get("more_body", False):
                break
        return b"".join(chunks)

    async def reply(
        self, status_code: int, headers: Mapping[str, str], body: bytes
    ) -> None:
        await self._send(
            {
                "type": "http.response.start",
                "status": status_code,
                "headers": [
                    (k.encode("latin-1"), str(v).encode("latin-1"))
                    for k, v in headers.items()
                ],
            }
        )
        await self._send({"type": "http.response.body", "body": bytes(body)})


class HerdASGI:
    """ASGI application serving a single handler."""

    def __init__(
        self,
        handler: Handler,
        options: Any = None,
        *,
        settings: Settings | None = None,
    ) -> None:
        self.pipeline = Pipeline(handler, options, settings=settings)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Dispatch ASGI *scope* to the pipeline."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
        elif scope["type"] == "http":
            await self.pipeline.handle(ASGITransport(scope, receive, send))
        else:
            raise NotImplementedError(f"Unsupported scope type {scope['type']}")

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return


__all__ = ["ASGITransport", "HerdASGI"]
